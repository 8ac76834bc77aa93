"""System router: family wipe."""

import logging

from fastapi import APIRouter, Response, status

from zenledger.core.dependencies import Backend, ParentSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["System"])


@router.delete("/reset", status_code=status.HTTP_204_NO_CONTENT)
async def reset_family(session: ParentSession, backend: Backend):
    """Remove children and all ledger data of the caller's family."""
    logger.warning("Family reset requested by %s for %s", session.user_id, session.family_id)
    await backend.reset_family(session)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
