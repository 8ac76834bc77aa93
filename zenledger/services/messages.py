"""Message Service.

Short messages between family members.  Parents see every message of the
family; children see the ones they sent or received.
"""

import logging

from pydantic import ValidationError

from zenledger.core.errors import NotFound, ValidationFailed
from zenledger.schemas import FamilyMessage, Session, UserRole
from zenledger.storage import MESSAGES, USERS, StorageBackend

logger = logging.getLogger(__name__)


class MessageChannel:
    def __init__(self, backend: StorageBackend) -> None:
        self.backend = backend

    async def send(
        self,
        session: Session,
        to_id: str,
        text: str,
        reply_to_id: str | None = None,
    ) -> FamilyMessage:
        """Send *text* from the caller to another member of the family.

        Raises:
            ValidationFailed: If the text is empty after trimming.
            NotFound: If the recipient or the replied-to message is unknown.
        """
        text = text.strip()
        if not text:
            raise ValidationFailed("Message text must not be empty")

        members = await self.backend.get(USERS, session)
        if not any(m["id"] == to_id for m in members):
            raise NotFound(f"No user {to_id} in this family")
        if reply_to_id is not None:
            visible = await self.list_for(session)
            if not any(m.id == reply_to_id for m in visible):
                raise NotFound(f"No message {reply_to_id} to reply to")

        try:
            message = FamilyMessage(
                family_id=session.family_id,
                from_id=session.user_id,
                from_role=session.role,
                to_id=to_id,
                text=text,
                reply_to_id=reply_to_id,
            )
        except ValidationError as exc:
            raise ValidationFailed(str(exc)) from exc

        stored = await self.backend.put(MESSAGES, message.model_dump(mode="json"), session)
        logger.debug("Message %s sent from %s to %s", message.id, session.user_id, to_id)
        return FamilyMessage.model_validate(stored)

    async def mark_read(self, session: Session, message_id: str) -> FamilyMessage:
        """Mark a message addressed to the caller as read.

        Repeating the call changes nothing.  Called by anyone but the
        recipient it leaves the message untouched.

        Raises:
            NotFound: If the message is not in the caller's family.
        """
        records = await self.backend.get(MESSAGES, session)
        record = next((r for r in records if r["id"] == message_id), None)
        if record is None:
            raise NotFound(f"No message {message_id}")

        message = FamilyMessage.model_validate(record)
        if message.to_id != session.user_id or message.is_read:
            return message
        stored = await self.backend.patch(MESSAGES, message_id, {"is_read": True}, session)
        return FamilyMessage.model_validate(stored)

    async def list_for(self, session: Session) -> list[FamilyMessage]:
        """Messages visible to the caller, oldest first."""
        messages = [
            FamilyMessage.model_validate(r) for r in await self.backend.get(MESSAGES, session)
        ]
        if session.role == UserRole.CHILD:
            messages = [
                m for m in messages
                if session.user_id in (m.from_id, m.to_id)
            ]
        return sorted(messages, key=lambda m: m.timestamp)

    async def unread_count(self, session: Session) -> int:
        return sum(
            1 for m in await self.list_for(session)
            if m.to_id == session.user_id and not m.is_read
        )
