"""Pydantic schemas for ledger records and API payloads."""

from zenledger.schemas.audit import AuditCreate, AuditEntry  # noqa: F401
from zenledger.schemas.common import (  # noqa: F401
    RequestStatus,
    TransactionCategory,
    TransactionType,
    UserRole,
)
from zenledger.schemas.message import FamilyMessage, MessageCreate, MessageUpdate  # noqa: F401
from zenledger.schemas.money_request import (  # noqa: F401
    MoneyRequest,
    MoneyRequestCreate,
    MoneyRequestUpdate,
)
from zenledger.schemas.result import ServiceResult  # noqa: F401
from zenledger.schemas.session import LoginRequest, Session, SignupRequest  # noqa: F401
from zenledger.schemas.transaction import Transaction  # noqa: F401
from zenledger.schemas.user import ChildCreate, User, UserUpdate  # noqa: F401
