"""Shared fixtures for ZenLedger tests.

Every test gets its own SQLite file, so no database server is required.
"""

import os
import uuid
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure settings can be loaded without .env
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")

from zenledger.core.session_store import SessionStore  # noqa: E402
from zenledger.family_ledger import FamilyLedger  # noqa: E402
from zenledger.storage import LocalBackend  # noqa: E402

API = "/api/v1"


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def backend(tmp_path):
    backend = LocalBackend(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await backend.init()
    yield backend
    await backend.close()


@pytest.fixture()
def store(tmp_path) -> SessionStore:
    """Device-local state in a temporary directory."""
    return SessionStore(tmp_path / "state", "v16")


@pytest_asyncio.fixture()
async def ledger(backend, store) -> FamilyLedger:
    return FamilyLedger(backend, store)


# ---------------------------------------------------------------------------
# Convenience: a family with one parent and one child, built via the facade
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def family(ledger: FamilyLedger):
    """Keys: family_id, parent (Session), child (User), child_session (Session)."""
    family_id = f"family_{uuid.uuid4().hex[:8]}"
    signup = await ledger.signup(family_id, "Mum", "parent-pass")
    assert signup.success, signup.error
    parent = signup.data

    created = await ledger.create_child(parent, "Sam", "child-pass")
    assert created.success, created.error

    login = await ledger.login(family_id, "sam", "child-pass")
    assert login.success, login.error

    return SimpleNamespace(
        family_id=family_id,
        parent=parent,
        child=created.data,
        child_session=login.data,
    )


# ---------------------------------------------------------------------------
# Reset rate-limiter counters before every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_rate_limits():
    """Clear in-memory rate-limit counters so tests never block each other."""
    from zenledger.core.rate_limit import limiter

    storage = getattr(limiter, "_storage", None)
    if storage is not None and hasattr(storage, "reset"):
        storage.reset()


# ---------------------------------------------------------------------------
# HTTP test client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def client(backend):
    from zenledger.core.dependencies import get_backend
    from zenledger.main import app

    app.dependency_overrides[get_backend] = lambda: backend

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def registered_parent(client: AsyncClient):
    """Sign up a family over HTTP and log its parent in.

    Keys: headers, user_id, family_id, token
    """
    family_id = f"family_{uuid.uuid4().hex[:8]}"
    resp = await client.post(f"{API}/auth/signup", json={
        "family_id": family_id,
        "handle": "Parent",
        "passphrase": "parent-pass",
    })
    assert resp.status_code == 201, resp.text

    resp = await client.post(f"{API}/auth/login", json={
        "family_id": family_id,
        "handle": "parent",
        "passphrase": "parent-pass",
    })
    assert resp.status_code == 200, resp.text
    session = resp.json()

    return {
        "headers": {"Authorization": f"Bearer {session['token']}"},
        "user_id": session["user_id"],
        "family_id": family_id,
        "token": session["token"],
    }


@pytest_asyncio.fixture()
async def registered_child(client: AsyncClient, registered_parent):
    """Add child "kid" to the registered parent's family and log it in.

    Keys: headers, user_id
    """
    resp = await client.post(
        f"{API}/users",
        json={"handle": "Kid", "passphrase": "child-pass"},
        headers=registered_parent["headers"],
    )
    assert resp.status_code == 201, resp.text

    resp = await client.post(f"{API}/auth/login", json={
        "family_id": registered_parent["family_id"],
        "handle": "kid",
        "passphrase": "child-pass",
    })
    assert resp.status_code == 200, resp.text
    session = resp.json()
    return {
        "headers": {"Authorization": f"Bearer {session['token']}"},
        "user_id": session["user_id"],
    }
