"""Money Request Service.

Children ask for funds; parents approve or reject.  Approval writes two
records (the status change and the credit) without a shared transaction,
so it is built to be retried: the status is patched first and the credit
carries an id derived from the request id.  Re-approving an approved
request inserts the credit only if it is still missing.
"""

import logging
import uuid
from decimal import Decimal

from pydantic import ValidationError

from zenledger.core.errors import DuplicateRecord, NotFound, Unauthorized, ValidationFailed
from zenledger.schemas import (
    MoneyRequest,
    RequestStatus,
    Session,
    Transaction,
    TransactionCategory,
    TransactionType,
    UserRole,
)
from zenledger.services.ledger import LedgerEngine
from zenledger.storage import REQUESTS, TRANSACTIONS, StorageBackend

logger = logging.getLogger(__name__)

_CREDIT_NAMESPACE = uuid.UUID("6f1c1f0e-6a44-4d38-9d0c-5b3f0e8c2a71")


def credit_id_for(request_id: str) -> str:
    """Id of the CREDIT transaction that settles an approved request."""
    return str(uuid.uuid5(_CREDIT_NAMESPACE, request_id))


def check_transition(current: RequestStatus, target: RequestStatus) -> None:
    """Allowed: PENDING -> APPROVED | REJECTED, and repeating a final status.

    Raises:
        ValidationFailed: For any other transition.
    """
    if target == RequestStatus.PENDING:
        raise ValidationFailed("A request cannot be moved back to PENDING")
    if current != RequestStatus.PENDING and current != target:
        raise ValidationFailed(
            f"Request already {current.value}, cannot change to {target.value}"
        )


class RequestWorkflow:
    def __init__(self, backend: StorageBackend, ledger: LedgerEngine) -> None:
        self.backend = backend
        self.ledger = ledger

    async def create_request(self, session: Session, amount: Decimal, reason: str) -> MoneyRequest:
        """File a PENDING request for the calling child.

        Raises:
            Unauthorized: If the caller is not a child.
            ValidationFailed: If the amount is not positive or the reason is empty.
        """
        if session.role != UserRole.CHILD:
            raise Unauthorized("Only a child can request money")
        try:
            request = MoneyRequest(
                child_id=session.user_id,
                amount=amount,
                reason=reason.strip(),
            )
        except ValidationError as exc:
            raise ValidationFailed(str(exc)) from exc

        stored = await self.backend.put(REQUESTS, request.model_dump(mode="json"), session)
        logger.info("Request %s for %s filed by %s", request.id, request.amount, session.user_id)
        return MoneyRequest.model_validate(stored)

    async def get_request(self, session: Session, request_id: str) -> MoneyRequest:
        for record in await self.backend.get(REQUESTS, session):
            if record["id"] == request_id:
                return MoneyRequest.model_validate(record)
        raise NotFound(f"No request {request_id}")

    async def resolve_request(
        self, session: Session, request_id: str, status: RequestStatus
    ) -> MoneyRequest:
        """Approve or reject a request.

        Approving credits the child exactly once with
        ``"Approved: " + reason``, no matter how often it is repeated.

        Raises:
            Unauthorized: If the caller is not a parent.
            NotFound: If the request is not in the caller's family.
            ValidationFailed: If the transition is not allowed.
        """
        if session.role != UserRole.PARENT:
            raise Unauthorized("Only a parent can resolve requests")
        try:
            status = RequestStatus(status)
        except ValueError:
            raise ValidationFailed(f"Unknown request status: {status!r}") from None
        request = await self.get_request(session, request_id)
        check_transition(request.status, status)

        if request.status != status:
            stored = await self.backend.patch(
                REQUESTS, request_id, {"status": status.value}, session
            )
            request = MoneyRequest.model_validate(stored)
            logger.info("Request %s %s by %s", request_id, status.value, session.user_id)

        if status == RequestStatus.APPROVED:
            await self._ensure_credit(session, request)
        return request

    async def _ensure_credit(self, session: Session, request: MoneyRequest) -> Transaction | None:
        """Insert the credit for an approved request unless it exists."""
        credit_id = credit_id_for(request.id)
        existing = await self.backend.get(TRANSACTIONS, session)
        if any(tx["id"] == credit_id for tx in existing):
            return None

        credit = Transaction(
            id=credit_id,
            user_id=request.child_id,
            amount=request.amount,
            type=TransactionType.CREDIT,
            category=TransactionCategory.ALLOWANCE,
            description=f"Approved: {request.reason}",
        )
        try:
            return await self.ledger.record_transaction(session, credit)
        except DuplicateRecord:
            logger.debug("Credit for request %s already recorded", request.id)
            return None

    async def settle_approved(self, session: Session) -> list[Transaction]:
        """Insert any credit still missing for an APPROVED request.

        Returns the credits that were created.
        """
        if session.role != UserRole.PARENT:
            raise Unauthorized("Only a parent can settle requests")
        created = []
        for request in await self.list_requests(session):
            if request.status != RequestStatus.APPROVED:
                continue
            credit = await self._ensure_credit(session, request)
            if credit is not None:
                created.append(credit)
        if created:
            logger.warning("Settled %d approved request(s) without credit", len(created))
        return created

    async def list_requests(self, session: Session) -> list[MoneyRequest]:
        """Family requests for parents, own requests for children; newest first."""
        records = await self.backend.get(REQUESTS, session)
        requests = [MoneyRequest.model_validate(r) for r in records]
        if session.role == UserRole.CHILD:
            requests = [r for r in requests if r.child_id == session.user_id]
        return sorted(requests, key=lambda r: r.timestamp, reverse=True)
