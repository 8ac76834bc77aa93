"""Ledger Service.

Appends immutable transactions and derives balances by replaying them.
Balances are never stored; every read folds the transaction history.
"""

import logging
from collections.abc import Iterable
from decimal import Decimal

from zenledger.core.errors import Unauthorized, ValidationFailed
from zenledger.schemas import Session, Transaction, TransactionType, User, UserRole
from zenledger.storage import TRANSACTIONS, USERS, StorageBackend

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def balance_of(user_id: str, transactions: Iterable[Transaction]) -> Decimal:
    """Sum of CREDIT minus DEBIT amounts for *user_id*.

    Order independent; amounts are exact decimals.
    """
    balance = ZERO
    for tx in transactions:
        if tx.user_id != user_id:
            continue
        if tx.type == TransactionType.CREDIT:
            balance += tx.amount
        else:
            balance -= tx.amount
    return balance


def check_spend(balance: Decimal, amount: Decimal) -> None:
    """Spend policy applied before a DEBIT is recorded.

    Raises:
        ValidationFailed: If *amount* exceeds *balance*.
    """
    if amount > balance:
        raise ValidationFailed(
            f"Insufficient balance: {balance:.2f} available, {amount:.2f} requested"
        )


class LedgerEngine:
    def __init__(self, backend: StorageBackend) -> None:
        self.backend = backend

    balance_of = staticmethod(balance_of)
    check_spend = staticmethod(check_spend)

    async def record_transaction(self, session: Session, tx: Transaction) -> Transaction:
        """Store *tx* verbatim.

        Raises:
            Unauthorized: If ``tx.user_id`` is not a member of the session's family.
            DuplicateRecord: If a transaction with the same id exists.
        """
        members = await self.backend.get(USERS, session)
        if not any(m["id"] == tx.user_id for m in members):
            raise Unauthorized("Cannot record transactions for users outside your family")

        stored = await self.backend.put(TRANSACTIONS, tx.model_dump(mode="json"), session)
        logger.info(
            "%s %s for user %s recorded by %s",
            tx.type.value, tx.amount, tx.user_id, session.user_id,
        )
        return Transaction.model_validate(stored)

    async def list_transactions(self, session: Session) -> list[Transaction]:
        """Family transactions, most recent first."""
        records = await self.backend.get(TRANSACTIONS, session)
        txs = [Transaction.model_validate(r) for r in records]
        return sorted(txs, key=lambda t: t.timestamp, reverse=True)

    async def balance(self, session: Session, user_id: str) -> Decimal:
        return balance_of(user_id, await self.list_transactions(session))

    async def family_balance(self, session: Session) -> Decimal:
        """Combined balance of every child in the family."""
        users = [User.model_validate(u) for u in await self.backend.get(USERS, session)]
        txs = await self.list_transactions(session)
        return sum(
            (balance_of(u.id, txs) for u in users if u.role == UserRole.CHILD),
            ZERO,
        )
