"""Identity Service.

Creates family, parent and child identities, authenticates handle +
passphrase pairs and validates the resulting sessions.
"""

import logging
import re

from zenledger.core.errors import Expired, NotFound, Unauthorized, ValidationFailed
from zenledger.core.security import MAX_PASSPHRASE_BYTES
from zenledger.schemas import Session, User, UserRole
from zenledger.storage import USERS, StorageBackend

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_family_id(family_id: str) -> str:
    """``"  Demo  Family "`` -> ``"demo_family"``."""
    return _WHITESPACE.sub("_", family_id.strip().lower())


def normalize_handle(handle: str) -> str:
    return handle.strip().lower()


def _check_passphrase(passphrase: str) -> None:
    if not passphrase:
        raise ValidationFailed("Passphrase must not be empty")
    if len(passphrase.encode("utf-8")) > MAX_PASSPHRASE_BYTES:
        raise ValidationFailed(
            f"Passphrase must be at most {MAX_PASSPHRASE_BYTES} bytes"
        )


class IdentityManager:
    """Identity & session operations over a storage backend."""

    def __init__(self, backend: StorageBackend) -> None:
        self.backend = backend

    async def create_family(self, family_id: str, handle: str, passphrase: str) -> User:
        """Register a new family with its first parent.

        Raises:
            ValidationFailed: If the family id, handle or passphrase is empty.
            DuplicateIdentity: If the normalized handle is taken in the family.
        """
        fid = normalize_family_id(family_id)
        username = normalize_handle(handle)
        if not fid or not username:
            raise ValidationFailed("Family id and handle are required")
        _check_passphrase(passphrase)

        parent = User(
            family_id=fid,
            name=handle.strip(),
            username=username,
            role=UserRole.PARENT,
        )
        record = parent.model_dump(mode="json")
        record["passphrase"] = passphrase
        stored = await self.backend.put(USERS, record)

        logger.info("Family %s created by %s", fid, username)
        return User.model_validate(stored)

    async def provision_child(self, session: Session, handle: str, passphrase: str) -> User:
        """Add a child account to the caller's family.

        Raises:
            Unauthorized: If the caller is not a parent.
            DuplicateIdentity: If the handle is taken in the family.
        """
        if session.role != UserRole.PARENT:
            raise Unauthorized("Only a parent can add children")
        username = normalize_handle(handle)
        if not username:
            raise ValidationFailed("Handle is required")
        _check_passphrase(passphrase)

        child = User(
            family_id=session.family_id,
            name=handle.strip(),
            username=username,
            role=UserRole.CHILD,
            parent_id=session.user_id,
        )
        record = child.model_dump(mode="json")
        record["passphrase"] = passphrase
        stored = await self.backend.put(USERS, record, session)

        logger.info("Child %s added to family %s", username, session.family_id)
        return User.model_validate(stored)

    async def authenticate(self, family_id: str, handle: str, passphrase: str) -> Session:
        """Exchange credentials for a session.

        Raises:
            InvalidCredentials: If no user matches.
            AccountDisabled: If the user is inactive.
        """
        payload = await self.backend.open_session(
            normalize_family_id(family_id),
            normalize_handle(handle),
            passphrase,
        )
        return Session.model_validate(payload)

    @staticmethod
    def validate(session: Session | None) -> Session:
        """Return *session* if it is still valid.

        Raises:
            Expired: If there is no session or its ``exp`` has passed.
        """
        if session is None or session.is_expired:
            raise Expired()
        return session

    async def list_users(self, session: Session) -> list[User]:
        records = await self.backend.get(USERS, session)
        return [User.model_validate(r) for r in records]

    async def get_member(self, session: Session, user_id: str) -> User:
        """Return the family member *user_id*.

        Raises:
            NotFound: If the user is not a member of the caller's family.
        """
        for user in await self.list_users(session):
            if user.id == user_id:
                return user
        raise NotFound(f"No user {user_id} in this family")

    async def set_active(self, session: Session, user_id: str, active: bool) -> User:
        """Enable or disable a child account.

        Raises:
            Unauthorized: If the caller is not a parent or the target is a parent.
            NotFound: If the user is not in the caller's family.
        """
        if session.role != UserRole.PARENT:
            raise Unauthorized("Only a parent can change account status")
        target = await self.get_member(session, user_id)
        if target.role != UserRole.CHILD:
            raise Unauthorized("Only child accounts can be enabled or disabled")

        stored = await self.backend.patch(USERS, user_id, {"is_active": active}, session)
        logger.info(
            "User %s %s by %s", user_id, "enabled" if active else "disabled", session.user_id
        )
        return User.model_validate(stored)
