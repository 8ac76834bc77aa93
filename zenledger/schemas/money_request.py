from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from zenledger.schemas.common import RequestStatus, UTCDateTime, new_id, utcnow


class MoneyRequest(BaseModel):
    id: str = Field(default_factory=new_id)
    child_id: str
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    reason: str = Field(min_length=1, max_length=400)
    status: RequestStatus = RequestStatus.PENDING
    timestamp: UTCDateTime = Field(default_factory=utcnow)
    model_config = ConfigDict(from_attributes=True)


class MoneyRequestCreate(BaseModel):
    amount: Decimal
    reason: str


class MoneyRequestUpdate(BaseModel):
    status: RequestStatus
