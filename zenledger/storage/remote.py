"""Storage backend that talks to the ZenLedger API over HTTP.

Uses httpx for async REST calls.  Every authenticated request carries the
session token in the ``Authorization: Bearer`` header.  Transport failures
surface as :class:`~zenledger.core.errors.ConnectionFailed`; idempotent
requests (GET, PATCH, DELETE) are retried a bounded number of times with
exponential back-off before giving up.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from zenledger.core.errors import (
    ConnectionFailed,
    DuplicateRecord,
    Expired,
    LedgerError,
    NotFound,
    Unauthorized,
    ValidationFailed,
    error_from_code,
)
from zenledger.schemas.session import Session
from zenledger.storage.base import (
    AUDIT,
    COLLECTIONS,
    MESSAGES,
    REQUESTS,
    TRANSACTIONS,
    USERS,
    Record,
    StorageBackend,
)

log = logging.getLogger(__name__)

_IDEMPOTENT_METHODS = frozenset({"GET", "PATCH", "DELETE"})

# Back-off between retries of idempotent calls
_INITIAL_BACKOFF: float = 0.5  # seconds
_MAX_BACKOFF: float = 8.0  # seconds
_BACKOFF_FACTOR: float = 2.0

_FALLBACK_ERRORS: dict[int, type[LedgerError]] = {
    401: Expired,
    403: Unauthorized,
    404: NotFound,
    409: DuplicateRecord,
    422: ValidationFailed,
}

_PATHS: dict[str, str] = {
    USERS: "/users",
    TRANSACTIONS: "/transactions",
    REQUESTS: "/requests",
    MESSAGES: "/messages",
    AUDIT: "/audit",
}


def _error_from_response(resp: httpx.Response) -> LedgerError:
    """Map an error response of the API back onto the ledger error taxonomy."""
    try:
        body = resp.json()
    except ValueError:
        body = {}
    detail = body.get("detail") if isinstance(body, dict) else None
    code = body.get("code") if isinstance(body, dict) else None
    if not isinstance(detail, str):
        detail = str(detail) if detail else resp.text or None

    if code:
        return error_from_code(code, detail)
    cls = _FALLBACK_ERRORS.get(resp.status_code, LedgerError)
    return cls(detail)


def _record(body: Any) -> Record:
    if not isinstance(body, dict):
        raise ConnectionFailed("Malformed response from ZenLedger API")
    return body


class RemoteBackend(StorageBackend):
    """Async HTTP client for the ZenLedger API.

    Parameters
    ----------
    api_base:
        Server URL including the API prefix, e.g. ``http://host:8000/api/v1``.
    timeout:
        Per-request timeout in seconds.
    max_retries:
        Extra attempts for idempotent requests after a transport failure.
    retry_backoff:
        Initial delay between attempts; doubles up to a fixed cap.
    transport:
        Optional httpx transport (tests use ``MockTransport`` / ``ASGITransport``).
    """

    def __init__(
        self,
        api_base: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_backoff: float = _INITIAL_BACKOFF,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_base = api_base
        self._timeout = timeout
        self._max_retries = max(0, max_retries)
        self._retry_backoff = retry_backoff
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    # -- lifecycle -----------------------------------------------------------

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._api_base,
                timeout=httpx.Timeout(self._timeout, connect=min(self._timeout, 10.0)),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Shut down the underlying HTTP client gracefully."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    # -- transport -----------------------------------------------------------

    @staticmethod
    def _auth_headers(session: Session | None) -> dict[str, str]:
        if session is None:
            return {}
        return {"Authorization": f"Bearer {session.token}"}

    async def _request(
        self,
        method: str,
        path: str,
        session: Session | None = None,
        json: Any = None,
    ) -> Any:
        client = await self._ensure_client()
        attempts = 1 + (self._max_retries if method in _IDEMPOTENT_METHODS else 0)
        backoff = self._retry_backoff

        for attempt in range(1, attempts + 1):
            try:
                resp = await client.request(
                    method, path, json=json, headers=self._auth_headers(session)
                )
            except httpx.TransportError as exc:
                if attempt >= attempts:
                    log.error("%s %s failed after %d attempt(s): %s", method, path, attempt, exc)
                    raise ConnectionFailed(f"Cannot reach ZenLedger API: {exc}") from exc
                log.warning(
                    "%s %s failed (%s), retrying in %.1fs (%d/%d)",
                    method, path, exc, backoff, attempt, attempts - 1,
                )
                await asyncio.sleep(backoff)
                backoff = min(backoff * _BACKOFF_FACTOR, _MAX_BACKOFF)
                continue
            except httpx.HTTPError as exc:
                log.error("%s %s failed: %s", method, path, exc)
                raise ConnectionFailed(f"Cannot reach ZenLedger API: {exc}") from exc

            if resp.is_error:
                log.debug("%s %s -> HTTP %s: %s", method, path, resp.status_code, resp.text)
                raise _error_from_response(resp)
            if resp.status_code == 204 or not resp.content:
                return None
            try:
                return resp.json()
            except ValueError as exc:
                log.error("%s %s returned a non-JSON body: %.200s", method, path, resp.text)
                raise ConnectionFailed("Malformed response from ZenLedger API") from exc

        raise ConnectionFailed(f"Cannot reach ZenLedger API: {method} {path}")

    @staticmethod
    def _path(collection: str) -> str:
        if collection not in COLLECTIONS:
            raise ValidationFailed(f"Unknown collection: {collection!r}")
        return _PATHS[collection]

    # -- contract ------------------------------------------------------------

    async def get(self, collection: str, session: Session) -> list[Record]:
        records = await self._request("GET", self._path(collection), session)
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise ConnectionFailed("Malformed response from ZenLedger API")
        return records

    async def put(
        self, collection: str, record: Record, session: Session | None = None
    ) -> Record:
        path = self._path(collection)

        if collection == USERS:
            body = {
                "handle": record.get("name") or record.get("username"),
                "passphrase": record.get("passphrase"),
            }
            if session is None:
                body["family_id"] = record.get("family_id")
                return _record(await self._request("POST", "/auth/signup", json=body))
            return _record(await self._request("POST", path, session, json=body))

        if session is None:
            raise Unauthorized("A session is required to write ledger data")
        if collection == REQUESTS:
            body = {"amount": str(record["amount"]), "reason": record["reason"]}
        elif collection == MESSAGES:
            body = {
                "to_id": record["to_id"],
                "text": record["text"],
                "reply_to_id": record.get("reply_to_id"),
            }
        elif collection == AUDIT:
            body = {"action": record["action"], "details": record.get("details")}
        else:
            body = record
        return _record(await self._request("POST", path, session, json=body))

    async def patch(
        self, collection: str, record_id: str, fields: Record, session: Session
    ) -> Record:
        path = f"{self._path(collection)}/{record_id}"
        return _record(await self._request("PATCH", path, session, json=fields))

    async def open_session(self, family_id: str, username: str, passphrase: str) -> Record:
        body = {"family_id": family_id, "handle": username, "passphrase": passphrase}
        return _record(await self._request("POST", "/auth/login", json=body))

    async def reset_family(self, session: Session) -> None:
        await self._request("DELETE", "/system/reset", session)

