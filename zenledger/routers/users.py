"""Users router.

Family members; parents add children and enable or disable them.
"""

from fastapi import APIRouter, status

from zenledger.core.dependencies import Backend, CurrentSession, ParentSession
from zenledger.schemas import ChildCreate, User, UserUpdate
from zenledger.services.identity import IdentityManager

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=list[User])
async def list_users(session: CurrentSession, backend: Backend):
    return await IdentityManager(backend).list_users(session)


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_child(body: ChildCreate, session: ParentSession, backend: Backend):
    """Add a child to the caller's family. Requires parent role."""
    return await IdentityManager(backend).provision_child(session, body.handle, body.passphrase)


@router.patch("/{user_id}", response_model=User)
async def update_user(
    user_id: str, body: UserUpdate, session: ParentSession, backend: Backend
):
    """Enable or disable a child account. Requires parent role."""
    return await IdentityManager(backend).set_active(session, user_id, body.is_active)
