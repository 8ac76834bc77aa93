"""SQLAlchemy ORM models.

All models are imported here so that ``Base.metadata`` knows every table
before ``create_all`` runs.
"""

from zenledger.models.audit import AuditRow  # noqa: F401
from zenledger.models.message import MessageRow  # noqa: F401
from zenledger.models.money_request import MoneyRequestRow  # noqa: F401
from zenledger.models.transaction import TransactionRow  # noqa: F401
from zenledger.models.user import UserRow  # noqa: F401

__all__ = [
    "AuditRow",
    "MessageRow",
    "MoneyRequestRow",
    "TransactionRow",
    "UserRow",
]
