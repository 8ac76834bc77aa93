"""Unit tests for core/security.py, no database required."""

import os
from datetime import timedelta

import pytest
from jose import JWTError

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")

from zenledger.core.security import (  # noqa: E402
    create_session_token,
    decode_token,
    get_password_hash,
    verify_password,
)


# ── Passphrase hashing ──────────────────────────────────────────────────────


class TestPassphraseHashing:
    def test_hash_and_verify(self):
        hashed = get_password_hash("blue-kite-42")
        assert hashed != "blue-kite-42"
        assert verify_password("blue-kite-42", hashed)

    def test_wrong_passphrase_rejected(self):
        hashed = get_password_hash("correct")
        assert not verify_password("wrong", hashed)

    def test_different_hashes_for_same_passphrase(self):
        assert get_password_hash("same") != get_password_hash("same")

    def test_malformed_hash_is_rejected(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")


# ── Session tokens ──────────────────────────────────────────────────────────


class TestSessionToken:
    def test_roundtrip(self):
        token, exp = create_session_token("user-1", "demo_family", "PARENT")
        payload = decode_token(token)
        assert payload["sub"] == "user-1"
        assert payload["fam"] == "demo_family"
        assert payload["role"] == "PARENT"
        assert payload["type"] == "session"
        assert payload["exp"] == int(exp.timestamp())

    def test_default_lifetime_is_24_hours(self):
        from zenledger.schemas.common import utcnow

        _, exp = create_session_token("user-1", "fam", "CHILD")
        remaining = exp - utcnow()
        assert timedelta(hours=23, minutes=59) < remaining <= timedelta(hours=24)

    def test_expired_token_rejected(self):
        token, _ = create_session_token(
            "user-1", "fam", "CHILD", expires_delta=timedelta(seconds=-1)
        )
        with pytest.raises(JWTError):
            decode_token(token)

    def test_tampered_token_rejected(self):
        token, _ = create_session_token("user-1", "fam", "CHILD")
        with pytest.raises(JWTError):
            decode_token(token[:-2] + ("aa" if token[-2:] != "aa" else "bb"))
