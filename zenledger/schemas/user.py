from pydantic import BaseModel, ConfigDict, Field

from zenledger.schemas.common import UserRole, new_id


class User(BaseModel):
    id: str = Field(default_factory=new_id)
    family_id: str
    name: str
    username: str
    role: UserRole
    parent_id: str | None = None
    is_active: bool = True
    model_config = ConfigDict(from_attributes=True)


class ChildCreate(BaseModel):
    handle: str
    passphrase: str


class UserUpdate(BaseModel):
    is_active: bool
