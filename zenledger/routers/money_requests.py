"""Money requests router.

Children file requests; parents move them to APPROVED or REJECTED.  The
credit for an approval is written by the client as a separate transaction
with an id derived from the request id.
"""

from fastapi import APIRouter, status

from zenledger.core.dependencies import Backend, ChildSession, CurrentSession, ParentSession
from zenledger.schemas import MoneyRequest, MoneyRequestCreate, MoneyRequestUpdate
from zenledger.services.ledger import LedgerEngine
from zenledger.services.money_requests import RequestWorkflow, check_transition
from zenledger.storage import REQUESTS

router = APIRouter(prefix="/requests", tags=["Requests"])


def _workflow(backend) -> RequestWorkflow:
    return RequestWorkflow(backend, LedgerEngine(backend))


@router.get("", response_model=list[MoneyRequest])
async def list_requests(session: CurrentSession, backend: Backend):
    return await _workflow(backend).list_requests(session)


@router.post("", response_model=MoneyRequest, status_code=status.HTTP_201_CREATED)
async def create_request(body: MoneyRequestCreate, session: ChildSession, backend: Backend):
    """File a request for money. Requires child role."""
    return await _workflow(backend).create_request(session, body.amount, body.reason)


@router.patch("/{request_id}", response_model=MoneyRequest)
async def update_request_status(
    request_id: str,
    body: MoneyRequestUpdate,
    session: ParentSession,
    backend: Backend,
):
    """Change the status of a request. Requires parent role.

    Repeating the current final status is accepted and changes nothing.
    """
    request = await _workflow(backend).get_request(session, request_id)
    check_transition(request.status, body.status)
    if request.status == body.status:
        return request
    return await backend.patch(REQUESTS, request_id, {"status": body.status.value}, session)
