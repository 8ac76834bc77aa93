"""Persistence adapters and the startup-time backend selection."""

from zenledger.config import Settings
from zenledger.storage.base import (  # noqa: F401
    AUDIT,
    COLLECTIONS,
    MESSAGES,
    REQUESTS,
    TRANSACTIONS,
    USERS,
    Record,
    StorageBackend,
)
from zenledger.storage.local import LocalBackend
from zenledger.storage.remote import RemoteBackend

BACKENDS = ("local", "remote")


def create_backend(settings: Settings) -> StorageBackend:
    """Build the backend named by ``STORAGE_BACKEND``.

    Called once at process start; the result is used for the lifetime of
    the process.
    """
    kind = settings.STORAGE_BACKEND.strip().lower()
    if kind == "local":
        return LocalBackend(settings.DATABASE_URL)
    if kind == "remote":
        return RemoteBackend(
            f"{settings.API_BASE_URL.rstrip('/')}{settings.API_V1_PREFIX}",
            timeout=settings.REMOTE_TIMEOUT_SECONDS,
            max_retries=settings.REMOTE_MAX_RETRIES,
        )
    raise ValueError(
        f"Unknown STORAGE_BACKEND {settings.STORAGE_BACKEND!r}; expected one of {BACKENDS}"
    )


__all__ = [
    "COLLECTIONS",
    "LocalBackend",
    "RemoteBackend",
    "StorageBackend",
    "create_backend",
]
