"""Transactions router.

The ledger is append-only: there is no update or delete endpoint.
"""

from fastapi import APIRouter, status

from zenledger.core.dependencies import Backend, CurrentSession
from zenledger.schemas import Transaction, UserRole
from zenledger.services.ledger import LedgerEngine

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.get("", response_model=list[Transaction])
async def list_transactions(session: CurrentSession, backend: Backend):
    """Family ledger for parents, own entries for children; newest first."""
    txs = await LedgerEngine(backend).list_transactions(session)
    if session.role == UserRole.CHILD:
        txs = [t for t in txs if t.user_id == session.user_id]
    return txs


@router.post("", response_model=Transaction, status_code=status.HTTP_201_CREATED)
async def record_transaction(body: Transaction, session: CurrentSession, backend: Backend):
    """Store a transaction as sent, for a member of the caller's family."""
    return await LedgerEngine(backend).record_transaction(session, body)
