from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from zenledger.schemas.common import UserRole, UTCDateTime, new_id, utcnow


class AuditEntry(BaseModel):
    id: str = Field(default_factory=new_id)
    family_id: str
    user_id: str
    role: UserRole
    action: str
    details: dict[str, Any] | None = None
    timestamp: UTCDateTime = Field(default_factory=utcnow)
    model_config = ConfigDict(from_attributes=True)


class AuditCreate(BaseModel):
    action: str
    details: dict[str, Any] | None = None
