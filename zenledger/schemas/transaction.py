from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from zenledger.schemas.common import (
    TransactionCategory,
    TransactionType,
    UTCDateTime,
    new_id,
    utcnow,
)


class Transaction(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    type: TransactionType
    category: TransactionCategory = TransactionCategory.OTHER
    description: str = Field(min_length=1, max_length=500)
    timestamp: UTCDateTime = Field(default_factory=utcnow)
    model_config = ConfigDict(from_attributes=True)
