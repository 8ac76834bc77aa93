from pydantic import BaseModel

from zenledger.schemas.common import UserRole, UTCDateTime, utcnow


class Session(BaseModel):
    """Authenticated context threaded through every privileged call."""

    token: str
    user_id: str
    family_id: str
    role: UserRole
    exp: UTCDateTime

    @property
    def is_expired(self) -> bool:
        return utcnow() >= self.exp


class SignupRequest(BaseModel):
    family_id: str
    handle: str
    passphrase: str


class LoginRequest(BaseModel):
    family_id: str
    handle: str
    passphrase: str
