"""Authentication router.

Endpoints for family signup, login and the current identity.
"""

from fastapi import APIRouter, Request, status

from zenledger.core.dependencies import Backend, CurrentSession
from zenledger.core.rate_limit import LOGIN_LIMIT, SIGNUP_LIMIT, limiter
from zenledger.schemas import LoginRequest, Session, SignupRequest, User
from zenledger.services.identity import IdentityManager

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/signup", response_model=User, status_code=status.HTTP_201_CREATED)
@limiter.limit(SIGNUP_LIMIT)
async def signup(request: Request, body: SignupRequest, backend: Backend):
    """Create a family and its first parent."""
    return await IdentityManager(backend).create_family(
        body.family_id, body.handle, body.passphrase
    )


@router.post("/login", response_model=Session)
@limiter.limit(LOGIN_LIMIT)
async def login(request: Request, body: LoginRequest, backend: Backend):
    """Exchange family id, handle and passphrase for a session."""
    return await IdentityManager(backend).authenticate(
        body.family_id, body.handle, body.passphrase
    )


@router.get("/me", response_model=User)
async def get_me(session: CurrentSession, backend: Backend):
    """Return the user behind the bearer token."""
    return await IdentityManager(backend).get_member(session, session.user_id)
