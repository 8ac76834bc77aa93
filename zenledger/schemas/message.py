from pydantic import BaseModel, ConfigDict, Field

from zenledger.schemas.common import UserRole, UTCDateTime, new_id, utcnow


class FamilyMessage(BaseModel):
    id: str = Field(default_factory=new_id)
    family_id: str
    from_id: str
    from_role: UserRole
    to_id: str
    text: str = Field(min_length=1, max_length=2000)
    timestamp: UTCDateTime = Field(default_factory=utcnow)
    is_read: bool = False
    reply_to_id: str | None = None
    model_config = ConfigDict(from_attributes=True)


class MessageCreate(BaseModel):
    to_id: str
    text: str
    reply_to_id: str | None = None


class MessageUpdate(BaseModel):
    is_read: bool = True
