from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from pydantic import ValidationError

from zenledger.config import settings
from zenledger.core.security import decode_token
from zenledger.schemas import Session, UserRole
from zenledger.storage import USERS, StorageBackend

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/login")


def get_backend(request: Request) -> StorageBackend:
    """Return the storage backend created in the application lifespan."""
    return request.app.state.backend


async def get_current_session(
    token: Annotated[str, Depends(oauth2_scheme)],
    backend: Annotated[StorageBackend, Depends(get_backend)],
) -> Session:
    """Rebuild the caller's Session from the bearer token.

    Raises:
        HTTPException 401: If the token is invalid or expired, or the user no
            longer exists or has been disabled.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(token)
        if payload.get("type") != "session":
            raise credentials_exception
        session = Session(
            token=token,
            user_id=payload["sub"],
            family_id=payload["fam"],
            role=payload["role"],
            exp=payload["exp"],
        )
    except (JWTError, KeyError, ValidationError):
        raise credentials_exception

    members = await backend.get(USERS, session)
    user = next((u for u in members if u["id"] == session.user_id), None)
    if user is None or not user["is_active"]:
        raise credentials_exception

    return session


CurrentSession = Annotated[Session, Depends(get_current_session)]


async def require_parent(session: CurrentSession) -> Session:
    """Dependency that ensures the caller has the PARENT role.

    Raises:
        HTTPException 403: If the caller is not a parent.
    """
    if session.role != UserRole.PARENT:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Parent role required",
        )
    return session


async def require_child(session: CurrentSession) -> Session:
    """Dependency that ensures the caller has the CHILD role.

    Raises:
        HTTPException 403: If the caller is not a child.
    """
    if session.role != UserRole.CHILD:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Child role required",
        )
    return session


Backend = Annotated[StorageBackend, Depends(get_backend)]
ParentSession = Annotated[Session, Depends(require_parent)]
ChildSession = Annotated[Session, Depends(require_child)]
