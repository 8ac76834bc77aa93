"""Audit trail of privileged actions, readable by parents."""

import logging
from typing import Any

from zenledger.core.errors import Unauthorized, ValidationFailed
from zenledger.schemas import AuditEntry, Session, UserRole
from zenledger.storage import AUDIT, StorageBackend

logger = logging.getLogger(__name__)

AUDIT_LIMIT = 50

CHILD_CREATED = "CHILD_CREATED"
ACCOUNT_STATUS_CHANGED = "ACCOUNT_STATUS_CHANGED"
LEDGER_UPDATE = "LEDGER_UPDATE"
REQUEST_RESOLVED = "REQUEST_RESOLVED"
REQUESTS_SETTLED = "REQUESTS_SETTLED"
FAMILY_RESET = "FAMILY_RESET"

ACTIONS = frozenset(
    {
        CHILD_CREATED,
        ACCOUNT_STATUS_CHANGED,
        LEDGER_UPDATE,
        REQUEST_RESOLVED,
        REQUESTS_SETTLED,
        FAMILY_RESET,
    }
)
# Children only ever log their own spending
CHILD_ACTIONS = frozenset({LEDGER_UPDATE})


class AuditTrail:
    def __init__(self, backend: StorageBackend) -> None:
        self.backend = backend

    async def record(
        self, session: Session, action: str, details: dict[str, Any] | None = None
    ) -> AuditEntry:
        """Append an entry for an action performed by the session's user.

        Raises:
            ValidationFailed: If *action* is not a known audit action.
            Unauthorized: If a child records a parent-only action.
        """
        if action not in ACTIONS:
            raise ValidationFailed(f"Unknown audit action: {action!r}")
        if session.role != UserRole.PARENT and action not in CHILD_ACTIONS:
            raise Unauthorized(f"Children cannot record {action}")
        entry = AuditEntry(
            family_id=session.family_id,
            user_id=session.user_id,
            role=session.role,
            action=action,
            details=details,
        )
        stored = await self.backend.put(AUDIT, entry.model_dump(mode="json"), session)
        logger.debug("Audit %s by %s", action, session.user_id)
        return AuditEntry.model_validate(stored)

    async def latest(self, session: Session, limit: int = AUDIT_LIMIT) -> list[AuditEntry]:
        """Most recent entries first.

        Raises:
            Unauthorized: If the caller is not a parent.
        """
        if session.role != UserRole.PARENT:
            raise Unauthorized("Only a parent can read the audit log")
        entries = [AuditEntry.model_validate(r) for r in await self.backend.get(AUDIT, session)]
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries[:limit]
