"""Abstract storage interface.

Ledger services never talk to a database or to the network directly; they
go through a :class:`StorageBackend`.  Two implementations exist:

* :class:`zenledger.storage.local.LocalBackend` - durable SQL store on this
  machine (SQLite by default).
* :class:`zenledger.storage.remote.RemoteBackend` - the ZenLedger API reached
  over HTTP with the session token as bearer credential.

The backend is chosen once at startup (:func:`zenledger.storage.create_backend`)
and never switched for the lifetime of a session.

Records cross this boundary as plain dicts.  Reads are scoped to the family
of the session passed in; ordering is storage order, callers sort.
"""

from abc import ABC, abstractmethod
from typing import Any

from zenledger.schemas.session import Session

USERS = "users"
TRANSACTIONS = "transactions"
REQUESTS = "requests"
MESSAGES = "messages"
AUDIT = "audit"

COLLECTIONS = (USERS, TRANSACTIONS, REQUESTS, MESSAGES, AUDIT)

Record = dict[str, Any]


class StorageBackend(ABC):
    """Uniform async storage contract over named collections."""

    async def init(self) -> None:
        """Prepare the backend (create tables, open clients)."""

    async def close(self) -> None:
        """Release connections held by the backend."""

    async def ping(self) -> None:
        """Raise if the backend cannot be reached."""

    @abstractmethod
    async def get(self, collection: str, session: Session) -> list[Record]:
        """Return every record of *collection* visible to the session's family."""

    @abstractmethod
    async def put(
        self, collection: str, record: Record, session: Session | None = None
    ) -> Record:
        """Insert *record* and return the committed version.

        ``session`` may only be omitted when registering a new family's
        first parent.  New user records carry a plain ``passphrase`` that the
        storage side hashes; it is never returned.

        Raises:
            DuplicateIdentity: If the ``(family_id, username)`` pair is taken.
            DuplicateRecord: If a record with the same id already exists.
        """

    @abstractmethod
    async def patch(
        self, collection: str, record_id: str, fields: Record, session: Session
    ) -> Record:
        """Update the mutable *fields* of one record and return it.

        Raises:
            NotFound: If no such record exists in the session's family.
        """

    @abstractmethod
    async def open_session(self, family_id: str, username: str, passphrase: str) -> Record:
        """Check credentials where they are stored and return a session payload.

        Raises:
            InvalidCredentials: If no user matches.
            AccountDisabled: If the matching user is inactive.
        """

    @abstractmethod
    async def reset_family(self, session: Session) -> None:
        """Remove children, ledger entries, requests, messages and audit
        entries of the session's family.  Parents and other families' data
        are left untouched.

        Raises:
            Unauthorized: If the session is not a parent's.
        """
