"""Entry point for presentation code.

:class:`FamilyLedger` wires the services to one storage backend and turns
every outcome into a :class:`~zenledger.schemas.ServiceResult`.  No ledger
error escapes it; callers check ``result.success`` and render
``result.error``.  Every call that takes a session validates it first.
"""

from __future__ import annotations

import functools
import logging
from decimal import Decimal

from pydantic import ValidationError

from zenledger.config import Settings
from zenledger.core.errors import (
    ConnectionFailed,
    LedgerError,
    NotFound,
    Unauthorized,
    ValidationFailed,
)
from zenledger.core.session_store import SessionStore
from zenledger.schemas import (
    RequestStatus,
    ServiceResult,
    Session,
    Transaction,
    TransactionCategory,
    TransactionType,
    User,
    UserRole,
)
from zenledger.services.audit import (
    ACCOUNT_STATUS_CHANGED,
    CHILD_CREATED,
    FAMILY_RESET,
    LEDGER_UPDATE,
    REQUEST_RESOLVED,
    REQUESTS_SETTLED,
    AuditTrail,
)
from zenledger.services.export import ledger_csv, monthly_summary_csv
from zenledger.services.identity import IdentityManager
from zenledger.services.ledger import LedgerEngine
from zenledger.services.messages import MessageChannel
from zenledger.services.money_requests import RequestWorkflow
from zenledger.storage import StorageBackend, create_backend

logger = logging.getLogger(__name__)


def _as_result(func):
    """Run a facade operation and wrap its outcome in a ServiceResult."""

    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs) -> ServiceResult:
        try:
            return ServiceResult.ok(await func(self, *args, **kwargs))
        except LedgerError as exc:
            logger.info("%s failed: %s (%s)", func.__name__, exc.detail, exc.code)
            return ServiceResult.fail(exc.detail, exc.code)
        except ValidationError as exc:
            # Records that came back from storage in an unexpected shape
            logger.warning("%s got a malformed record: %s", func.__name__, exc)
            err = ConnectionFailed("Malformed response from storage")
            return ServiceResult.fail(err.detail, err.code)

    return wrapper


def _new_transaction(**fields) -> Transaction:
    try:
        return Transaction(**fields)
    except ValidationError as exc:
        raise ValidationFailed(str(exc)) from exc


class FamilyLedger:
    """Operations offered to the presentation layer.

    Parameters
    ----------
    backend:
        Storage backend, fixed for the lifetime of this object.
    store:
        Device-local session and onboarding state.
    """

    def __init__(self, backend: StorageBackend, store: SessionStore) -> None:
        self.backend = backend
        self.store = store
        self.identity = IdentityManager(backend)
        self.ledger = LedgerEngine(backend)
        self.requests = RequestWorkflow(backend, self.ledger)
        self.messages = MessageChannel(backend)
        self.audit = AuditTrail(backend)

    @classmethod
    def from_settings(cls, settings: Settings) -> FamilyLedger:
        return cls(
            create_backend(settings),
            SessionStore(settings.STATE_DIR, settings.STATE_NAMESPACE),
        )

    async def init(self) -> None:
        await self.backend.init()

    async def close(self) -> None:
        await self.backend.close()

    async def __aenter__(self) -> FamilyLedger:
        await self.init()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _check(self, session: Session | None) -> Session:
        return self.identity.validate(session)

    @staticmethod
    def _require_parent(session: Session) -> None:
        if session.role != UserRole.PARENT:
            raise Unauthorized("Parent role required")

    async def _child(self, session: Session, child_id: str) -> User:
        user = await self.identity.get_member(session, child_id)
        if user.role != UserRole.CHILD:
            raise NotFound(f"No child {child_id} in this family")
        return user

    # -- identity -------------------------------------------------------------

    @_as_result
    async def signup(self, family_id: str, handle: str, passphrase: str) -> Session:
        """Create a family with its first parent and log that parent in."""
        await self.identity.create_family(family_id, handle, passphrase)
        session = await self.identity.authenticate(family_id, handle, passphrase)
        self.store.save(session)
        return session

    @_as_result
    async def login(self, family_id: str, handle: str, passphrase: str) -> Session:
        session = await self.identity.authenticate(family_id, handle, passphrase)
        self.store.save(session)
        return session

    @_as_result
    async def logout(self) -> None:
        self.store.clear()

    @_as_result
    async def restore_session(self) -> Session | None:
        """The stored session, or None when absent or expired."""
        return self.store.load()

    @_as_result
    async def create_child(self, session: Session, handle: str, passphrase: str) -> User:
        session = self._check(session)
        child = await self.identity.provision_child(session, handle, passphrase)
        await self.audit.record(session, CHILD_CREATED, {"handle": child.username})
        return child

    @_as_result
    async def set_child_active(self, session: Session, child_id: str, active: bool) -> User:
        session = self._check(session)
        user = await self.identity.set_active(session, child_id, active)
        await self.audit.record(
            session, ACCOUNT_STATUS_CHANGED, {"user_id": child_id, "is_active": active}
        )
        return user

    @_as_result
    async def list_users(self, session: Session) -> list[User]:
        session = self._check(session)
        return await self.identity.list_users(session)

    # -- ledger ---------------------------------------------------------------

    async def _record(self, session: Session, tx: Transaction) -> Transaction:
        if tx.type == TransactionType.DEBIT:
            balance = await self.ledger.balance(session, tx.user_id)
            self.ledger.check_spend(balance, tx.amount)
        stored = await self.ledger.record_transaction(session, tx)
        await self.audit.record(
            session,
            LEDGER_UPDATE,
            {
                "type": stored.type.value,
                "amount": f"{stored.amount:.2f}",
                "user_id": stored.user_id,
            },
        )
        return stored

    @_as_result
    async def record_transaction(self, session: Session, tx: Transaction) -> Transaction:
        """Append *tx*; a DEBIT must be covered by the user's balance."""
        session = self._check(session)
        return await self._record(session, tx)

    @_as_result
    async def spend(
        self,
        session: Session,
        amount: Decimal,
        description: str,
        category: TransactionCategory = TransactionCategory.OTHER,
    ) -> Transaction:
        """Log spending by the caller."""
        session = self._check(session)
        tx = _new_transaction(
            user_id=session.user_id,
            amount=amount,
            type=TransactionType.DEBIT,
            category=category,
            description=description.strip(),
        )
        return await self._record(session, tx)

    @_as_result
    async def allocate(
        self,
        session: Session,
        child_id: str,
        amount: Decimal,
        description: str = "Allowance",
        category: TransactionCategory = TransactionCategory.ALLOWANCE,
    ) -> Transaction:
        """Credit a child's account from a parent."""
        session = self._check(session)
        self._require_parent(session)
        await self._child(session, child_id)
        tx = _new_transaction(
            user_id=child_id,
            amount=amount,
            type=TransactionType.CREDIT,
            category=category,
            description=description.strip(),
        )
        return await self._record(session, tx)

    @_as_result
    async def list_transactions(self, session: Session) -> list[Transaction]:
        """Whole family for parents, own entries for children; newest first."""
        session = self._check(session)
        txs = await self.ledger.list_transactions(session)
        if session.role == UserRole.CHILD:
            txs = [t for t in txs if t.user_id == session.user_id]
        return txs

    @_as_result
    async def balance(self, session: Session, user_id: str | None = None) -> Decimal:
        session = self._check(session)
        user_id = user_id or session.user_id
        if session.role == UserRole.CHILD and user_id != session.user_id:
            raise Unauthorized("Children can only see their own balance")
        await self.identity.get_member(session, user_id)
        return await self.ledger.balance(session, user_id)

    @_as_result
    async def family_balance(self, session: Session) -> Decimal:
        session = self._check(session)
        self._require_parent(session)
        return await self.ledger.family_balance(session)

    # -- requests -------------------------------------------------------------

    @_as_result
    async def create_request(self, session: Session, amount: Decimal, reason: str):
        session = self._check(session)
        return await self.requests.create_request(session, amount, reason)

    @_as_result
    async def resolve_request(self, session: Session, request_id: str, status: RequestStatus):
        session = self._check(session)
        request = await self.requests.resolve_request(session, request_id, status)
        await self.audit.record(
            session,
            REQUEST_RESOLVED,
            {"request_id": request_id, "status": request.status.value},
        )
        return request

    @_as_result
    async def settle_approved(self, session: Session) -> list[Transaction]:
        """Credit approved requests whose credit was never written."""
        session = self._check(session)
        created = await self.requests.settle_approved(session)
        if created:
            await self.audit.record(session, REQUESTS_SETTLED, {"count": len(created)})
        return created

    @_as_result
    async def list_requests(self, session: Session):
        session = self._check(session)
        return await self.requests.list_requests(session)

    # -- messages -------------------------------------------------------------

    @_as_result
    async def send(
        self, session: Session, to_id: str, text: str, reply_to_id: str | None = None
    ):
        session = self._check(session)
        return await self.messages.send(session, to_id, text, reply_to_id)

    @_as_result
    async def mark_read(self, session: Session, message_id: str):
        session = self._check(session)
        return await self.messages.mark_read(session, message_id)

    @_as_result
    async def list_messages(self, session: Session):
        session = self._check(session)
        return await self.messages.list_for(session)

    @_as_result
    async def unread_count(self, session: Session) -> int:
        session = self._check(session)
        return await self.messages.unread_count(session)

    # -- audit & export -------------------------------------------------------

    @_as_result
    async def list_audit(self, session: Session):
        session = self._check(session)
        return await self.audit.latest(session)

    @_as_result
    async def export_ledger_csv(self, session: Session, child_id: str) -> str:
        session = self._check(session)
        self._require_parent(session)
        child = await self._child(session, child_id)
        txs = await self.ledger.list_transactions(session)
        requests = await self.requests.list_requests(session)
        return ledger_csv(child, txs, requests)

    @_as_result
    async def export_monthly_csv(self, session: Session, child_id: str) -> str:
        session = self._check(session)
        self._require_parent(session)
        child = await self._child(session, child_id)
        return monthly_summary_csv(child, await self.ledger.list_transactions(session))

    # -- family wipe ----------------------------------------------------------

    @_as_result
    async def reset_family(self, session: Session) -> None:
        """Remove children and all ledger data of the caller's family."""
        session = self._check(session)
        self._require_parent(session)
        children = {
            u.id for u in await self.identity.list_users(session) if u.role == UserRole.CHILD
        }
        await self.backend.reset_family(session)
        self.store.forget_users(children)
        await self.audit.record(session, FAMILY_RESET, {"children_removed": len(children)})

    # -- onboarding -----------------------------------------------------------

    @_as_result
    async def has_seen_onboarding(self, user_id: str) -> bool:
        return self.store.has_seen_onboarding(user_id)

    @_as_result
    async def mark_onboarding_seen(self, user_id: str) -> None:
        self.store.mark_onboarding_seen(user_id)
