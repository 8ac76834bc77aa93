"""Integration tests for the /api/v1/auth endpoints and error rendering."""

import uuid

API = "/api/v1"


class TestSignup:
    async def test_signup_success(self, client):
        resp = await client.post(f"{API}/auth/signup", json={
            "family_id": "Demo Family",
            "handle": "Admin",
            "passphrase": "x",
        })
        assert resp.status_code == 201
        data = resp.json()
        assert data["family_id"] == "demo_family"
        assert data["username"] == "admin"
        assert data["role"] == "PARENT"
        assert "password_hash" not in data

    async def test_signup_duplicate(self, client):
        payload = {"family_id": "Demo Family", "handle": "Admin", "passphrase": "x"}
        assert (await client.post(f"{API}/auth/signup", json=payload)).status_code == 201

        resp = await client.post(f"{API}/auth/signup", json={
            "family_id": "demo_family", "handle": "admin", "passphrase": "y",
        })
        assert resp.status_code == 409
        assert resp.json()["code"] == "DUPLICATE_IDENTITY"

    async def test_signup_missing_field(self, client):
        resp = await client.post(f"{API}/auth/signup", json={"family_id": "f"})
        assert resp.status_code == 422


class TestLogin:
    async def test_login_success(self, client, registered_parent):
        resp = await client.post(f"{API}/auth/login", json={
            "family_id": registered_parent["family_id"].upper(),
            "handle": " PARENT ",
            "passphrase": "parent-pass",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["user_id"] == registered_parent["user_id"]
        assert data["role"] == "PARENT"
        assert data["token"]
        assert data["exp"]

    async def test_login_wrong_passphrase(self, client, registered_parent):
        resp = await client.post(f"{API}/auth/login", json={
            "family_id": registered_parent["family_id"],
            "handle": "parent",
            "passphrase": "wrong",
        })
        assert resp.status_code == 401
        assert resp.json() == {"detail": "Invalid credentials", "code": "INVALID_CREDENTIALS"}

    async def test_login_unknown_family(self, client):
        resp = await client.post(f"{API}/auth/login", json={
            "family_id": f"nobody_{uuid.uuid4().hex[:6]}",
            "handle": "parent",
            "passphrase": "pw",
        })
        assert resp.status_code == 401


class TestMe:
    async def test_me(self, client, registered_parent):
        resp = await client.get(f"{API}/auth/me", headers=registered_parent["headers"])
        assert resp.status_code == 200
        assert resp.json()["id"] == registered_parent["user_id"]

    async def test_me_without_token(self, client):
        resp = await client.get(f"{API}/auth/me")
        assert resp.status_code == 401

    async def test_me_with_garbage_token(self, client):
        resp = await client.get(
            f"{API}/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert resp.status_code == 401

    async def test_disabled_child_token_rejected(self, client, registered_parent, registered_child):
        resp = await client.patch(
            f"{API}/users/{registered_child['user_id']}",
            json={"is_active": False},
            headers=registered_parent["headers"],
        )
        assert resp.status_code == 200
        resp = await client.get(f"{API}/auth/me", headers=registered_child["headers"])
        assert resp.status_code == 401


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["db"] == "ok"
