"""Local durable storage backed by SQLAlchemy.

Defaults to a SQLite file next to the application; any async SQLAlchemy URL
works, which is how the API server uses the same backend on PostgreSQL.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any

from pydantic import BaseModel, ValidationError
from sqlalchemy import Select, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from zenledger.core.errors import (
    AccountDisabled,
    DuplicateIdentity,
    DuplicateRecord,
    InvalidCredentials,
    NotFound,
    Unauthorized,
    ValidationFailed,
)
from zenledger.core.security import create_session_token, get_password_hash, verify_password
from zenledger.database import Base, make_engine, make_sessionmaker
from zenledger.models import AuditRow, MessageRow, MoneyRequestRow, TransactionRow, UserRow
from zenledger.schemas import (
    AuditEntry,
    FamilyMessage,
    MoneyRequest,
    RequestStatus,
    Session,
    Transaction,
    User,
    UserRole,
)
from zenledger.storage.base import (
    AUDIT,
    MESSAGES,
    REQUESTS,
    TRANSACTIONS,
    USERS,
    Record,
    StorageBackend,
)

logger = logging.getLogger(__name__)

_ROWS: dict[str, type[Base]] = {
    USERS: UserRow,
    TRANSACTIONS: TransactionRow,
    REQUESTS: MoneyRequestRow,
    MESSAGES: MessageRow,
    AUDIT: AuditRow,
}

_SCHEMAS: dict[str, type[BaseModel]] = {
    USERS: User,
    TRANSACTIONS: Transaction,
    REQUESTS: MoneyRequest,
    MESSAGES: FamilyMessage,
    AUDIT: AuditEntry,
}

# Everything else is immutable once written
_MUTABLE_FIELDS: dict[str, set[str]] = {
    USERS: {"is_active"},
    REQUESTS: {"status"},
    MESSAGES: {"is_read"},
}


def _to_record(row: Base) -> Record:
    data = {column.key: getattr(row, column.key) for column in row.__table__.columns}
    data.pop("password_hash", None)
    return data


def _column_values(model: BaseModel) -> dict[str, Any]:
    values = model.model_dump()
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in values.items()
    }


def _coerce_field(field: str, value: Any) -> Any:
    if field == "status":
        try:
            return RequestStatus(value).value
        except ValueError:
            raise ValidationFailed(f"Unknown request status: {value!r}") from None
    if not isinstance(value, bool):
        raise ValidationFailed(f"{field} must be a boolean")
    return value


class LocalBackend(StorageBackend):
    """SQL storage reached directly through an async engine.

    Parameters
    ----------
    database_url:
        Async SQLAlchemy URL, e.g. ``sqlite+aiosqlite:///./zenledger.db``.
    """

    def __init__(self, database_url: str) -> None:
        self._url = database_url
        self._engine = make_engine(database_url)
        self._sessionmaker = make_sessionmaker(self._engine)

    # -- lifecycle ------------------------------------------------------------

    async def init(self) -> None:
        """Create the schema tables if they do not already exist."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Local store ready at %s", self._engine.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        await self._engine.dispose()

    async def ping(self) -> None:
        async with self._engine.connect() as conn:
            await conn.execute(select(1))

    @asynccontextmanager
    async def _db(self) -> AsyncIterator[AsyncSession]:
        async with self._sessionmaker() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    # -- scoping --------------------------------------------------------------

    @staticmethod
    def _scoped(collection: str, family_id: str) -> Select:
        """Select the rows of *collection* that belong to *family_id*."""
        members = select(UserRow.id).where(UserRow.family_id == family_id)
        if collection == USERS:
            return select(UserRow).where(UserRow.family_id == family_id)
        if collection == TRANSACTIONS:
            return select(TransactionRow).where(TransactionRow.user_id.in_(members))
        if collection == REQUESTS:
            return select(MoneyRequestRow).where(MoneyRequestRow.child_id.in_(members))
        if collection == MESSAGES:
            return select(MessageRow).where(MessageRow.family_id == family_id)
        if collection == AUDIT:
            return select(AuditRow).where(AuditRow.family_id == family_id)
        raise ValidationFailed(f"Unknown collection: {collection!r}")

    # -- contract -------------------------------------------------------------

    async def get(self, collection: str, session: Session) -> list[Record]:
        if session is None:
            raise Unauthorized("A session is required to read ledger data")
        query = self._scoped(collection, session.family_id)
        if collection != USERS:
            query = query.order_by(_ROWS[collection].timestamp)
        async with self._db() as db:
            result = await db.execute(query)
            return [_to_record(row) for row in result.scalars().all()]

    async def put(
        self, collection: str, record: Record, session: Session | None = None
    ) -> Record:
        if collection not in _ROWS:
            raise ValidationFailed(f"Unknown collection: {collection!r}")
        record = dict(record)
        passphrase = record.pop("passphrase", None)

        try:
            model = _SCHEMAS[collection].model_validate(record)
        except ValidationError as exc:
            raise ValidationFailed(str(exc)) from exc
        values = _column_values(model)

        if collection == USERS:
            if passphrase is None:
                raise ValidationFailed("A passphrase is required for new users")
            if session is None and model.role != UserRole.PARENT:
                raise Unauthorized("Only a family's first parent can register without a session")
            values["password_hash"] = get_password_hash(passphrase)
        elif session is None:
            raise Unauthorized("A session is required to write ledger data")

        if session is not None and "family_id" in values and values["family_id"] != session.family_id:
            raise Unauthorized("Cannot write records for another family")

        row = _ROWS[collection](**values)
        try:
            async with self._db() as db:
                db.add(row)
                await db.flush()
        except IntegrityError as exc:
            if collection == USERS:
                raise DuplicateIdentity() from exc
            raise DuplicateRecord(f"{collection} record {values['id']} already exists") from exc

        logger.debug("Stored %s record %s", collection, values["id"])
        return _to_record(row)

    async def patch(
        self, collection: str, record_id: str, fields: Record, session: Session
    ) -> Record:
        if session is None:
            raise Unauthorized("A session is required to write ledger data")
        allowed = _MUTABLE_FIELDS.get(collection)
        if allowed is None:
            raise ValidationFailed(f"{collection} records cannot be modified")
        unknown = set(fields) - allowed
        if unknown:
            raise ValidationFailed(f"Fields not modifiable: {', '.join(sorted(unknown))}")

        query = self._scoped(collection, session.family_id).where(
            _ROWS[collection].id == record_id
        )
        async with self._db() as db:
            row = (await db.execute(query)).scalar_one_or_none()
            if row is None:
                raise NotFound(f"No {collection} record {record_id}")
            for field, value in fields.items():
                setattr(row, field, _coerce_field(field, value))
            await db.flush()
            return _to_record(row)

    async def open_session(self, family_id: str, username: str, passphrase: str) -> Record:
        async with self._db() as db:
            result = await db.execute(
                select(UserRow).where(
                    UserRow.family_id == family_id,
                    UserRow.username == username,
                )
            )
            user = result.scalar_one_or_none()

        if user is None or not verify_password(passphrase, user.password_hash):
            raise InvalidCredentials()
        if not user.is_active:
            raise AccountDisabled()

        token, exp = create_session_token(user.id, user.family_id, user.role)
        return {
            "token": token,
            "user_id": user.id,
            "family_id": user.family_id,
            "role": user.role,
            "exp": exp,
        }

    async def reset_family(self, session: Session) -> None:
        if session.role != UserRole.PARENT:
            raise Unauthorized("Only a parent can reset the family")

        family_id = session.family_id
        members = select(UserRow.id).where(UserRow.family_id == family_id)
        async with self._db() as db:
            tx_result = await db.execute(
                delete(TransactionRow).where(TransactionRow.user_id.in_(members))
            )
            req_result = await db.execute(
                delete(MoneyRequestRow).where(MoneyRequestRow.child_id.in_(members))
            )
            msg_result = await db.execute(
                delete(MessageRow).where(MessageRow.family_id == family_id)
            )
            await db.execute(delete(AuditRow).where(AuditRow.family_id == family_id))
            child_result = await db.execute(
                delete(UserRow).where(
                    UserRow.family_id == family_id,
                    UserRow.role == UserRole.CHILD.value,
                )
            )
        logger.info(
            "Family %s reset: %d children, %d transactions, %d requests, %d messages removed",
            family_id,
            child_result.rowcount,
            tx_result.rowcount,
            req_result.rowcount,
            msg_result.rowcount,
        )
