"""Passphrase hashing and session token signing."""

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import jwt

from zenledger.config import settings

# bcrypt only looks at the first 72 bytes of a secret
MAX_PASSPHRASE_BYTES = 72


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("ascii"))
    except ValueError:
        return False


def create_session_token(
    user_id: str,
    family_id: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> tuple[str, datetime]:
    """Sign a session token and return it with its absolute expiry."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(hours=settings.SESSION_TTL_HOURS)
    )
    payload = {
        "sub": user_id,
        "fam": family_id,
        "role": role,
        "exp": expire,
        "type": "session",
    }
    token = jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return token, expire


def decode_token(token: str) -> dict:
    """Decode and verify a session token.

    Raises:
        jose.JWTError: If the signature is invalid or the token has expired.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
