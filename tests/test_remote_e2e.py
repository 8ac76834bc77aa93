"""The facade over RemoteBackend, talking to the real API in-process."""

from decimal import Decimal

import httpx
import pytest_asyncio

from zenledger.family_ledger import FamilyLedger
from zenledger.schemas import RequestStatus
from zenledger.storage import RemoteBackend


@pytest_asyncio.fixture()
async def remote_ledger(backend, store):
    from zenledger.core.dependencies import get_backend
    from zenledger.main import app

    app.dependency_overrides[get_backend] = lambda: backend
    remote = RemoteBackend(
        "http://test/api/v1",
        transport=httpx.ASGITransport(app=app),
        retry_backoff=0,
    )
    yield FamilyLedger(remote, store)
    await remote.close()
    app.dependency_overrides.clear()


class TestRemoteFamilyFlow:
    async def test_end_to_end(self, remote_ledger: FamilyLedger):
        ledger = remote_ledger
        parent = (await ledger.signup("Remote Family", "Dad", "pw")).data
        assert parent.family_id == "remote_family"

        child = (await ledger.create_child(parent, "sam", "pw")).data
        child_session = (await ledger.login("remote family", "SAM", "pw")).data

        request = (await ledger.create_request(child_session, Decimal("500"), "book")).data
        approved = await ledger.resolve_request(parent, request.id, RequestStatus.APPROVED)
        assert approved.success, approved.error
        again = await ledger.resolve_request(parent, request.id, RequestStatus.APPROVED)
        assert again.success, again.error

        assert (await ledger.balance(parent, child.id)).data == Decimal("500")
        txs = (await ledger.list_transactions(child_session)).data
        assert [t.description for t in txs] == ["Approved: book"]

        spent = await ledger.spend(child_session, Decimal("600"), "bike")
        assert spent.code == "VALIDATION_FAILED"

    async def test_duplicate_signup_maps_error(self, remote_ledger: FamilyLedger):
        assert (await remote_ledger.signup("Demo Family", "Admin", "x")).success
        second = await remote_ledger.signup("demo_family", "admin", "y")
        assert second.code == "DUPLICATE_IDENTITY"

    async def test_role_gate_maps_error(self, remote_ledger: FamilyLedger):
        parent = (await remote_ledger.signup("gate", "mum", "pw")).data
        await remote_ledger.create_child(parent, "kid", "pw")
        child = (await remote_ledger.login("gate", "kid", "pw")).data
        result = await remote_ledger.create_child(child, "eve", "pw")
        assert result.code == "UNAUTHORIZED"

    async def test_messages_and_reset(self, remote_ledger: FamilyLedger):
        parent = (await remote_ledger.signup("msgs", "mum", "pw")).data
        kid = (await remote_ledger.create_child(parent, "kid", "pw")).data
        kid_session = (await remote_ledger.login("msgs", "kid", "pw")).data

        sent = (await remote_ledger.send(parent, kid.id, "hi")).data
        assert (await remote_ledger.unread_count(kid_session)).data == 1
        assert (await remote_ledger.mark_read(kid_session, sent.id)).success
        assert (await remote_ledger.unread_count(kid_session)).data == 0

        assert (await remote_ledger.reset_family(parent)).success
        users = (await remote_ledger.list_users(parent)).data
        assert [u.id for u in users] == [parent.user_id]

    async def test_unreachable_server(self, store):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        remote = RemoteBackend(
            "http://down/api/v1", transport=httpx.MockTransport(refuse), retry_backoff=0
        )
        result = await FamilyLedger(remote, store).login("fam", "mum", "pw")
        assert result.code == "CONNECTION_FAILED"
        await remote.close()
