"""Audit log router."""

from fastapi import APIRouter, status

from zenledger.core.dependencies import Backend, CurrentSession, ParentSession
from zenledger.schemas import AuditCreate, AuditEntry
from zenledger.services.audit import AuditTrail

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get("", response_model=list[AuditEntry])
async def list_audit(session: ParentSession, backend: Backend):
    """Latest audit entries of the family. Requires parent role."""
    return await AuditTrail(backend).latest(session)


@router.post("", response_model=AuditEntry, status_code=status.HTTP_201_CREATED)
async def record_audit(body: AuditCreate, session: CurrentSession, backend: Backend):
    return await AuditTrail(backend).record(session, body.action, body.details)
