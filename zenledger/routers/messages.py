"""Messages router."""

from fastapi import APIRouter, status

from zenledger.core.dependencies import Backend, CurrentSession
from zenledger.core.errors import ValidationFailed
from zenledger.schemas import FamilyMessage, MessageCreate, MessageUpdate
from zenledger.services.messages import MessageChannel

router = APIRouter(prefix="/messages", tags=["Messages"])


@router.get("", response_model=list[FamilyMessage])
async def list_messages(session: CurrentSession, backend: Backend):
    """Messages visible to the caller, oldest first."""
    return await MessageChannel(backend).list_for(session)


@router.post("", response_model=FamilyMessage, status_code=status.HTTP_201_CREATED)
async def send_message(body: MessageCreate, session: CurrentSession, backend: Backend):
    return await MessageChannel(backend).send(session, body.to_id, body.text, body.reply_to_id)


@router.patch("/{message_id}", response_model=FamilyMessage)
async def update_message(
    message_id: str, body: MessageUpdate, session: CurrentSession, backend: Backend
):
    """Mark a message as read. Only the recipient's call has an effect."""
    if not body.is_read:
        raise ValidationFailed("Messages cannot be marked unread")
    return await MessageChannel(backend).mark_read(session, message_id)
