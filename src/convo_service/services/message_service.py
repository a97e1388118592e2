from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from convo_service.application.dto import events
from convo_service.application.dto.message import MessageView, SendMessageDTO
from convo_service.application.dto.principal import Principal
from convo_service.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from convo_service.application.policies.permissions import assert_participant
from convo_service.application.ports.broker import Broker
from convo_service.application.uow import UnitOfWork
from convo_service.config import settings
from convo_service.domain.entities.message import Message
from convo_service.domain.value_objects.enums import EventName
from convo_service.services._shared import publish_to, resolve_usernames, run_step

logger = logging.getLogger(__name__)


def validate_body(body: str | None) -> str:
    if not body or not body.strip():
        raise ValidationError(
            "Message content is required",
            errors=[{"path": "message", "message": "Message cannot be empty"}],
        )
    if len(body) > settings.MESSAGE_MAX_LENGTH:
        raise ValidationError(
            "Message too long",
            errors=[{
                "path": "message",
                "message": f"Message too long (max {settings.MESSAGE_MAX_LENGTH} characters)",
            }],
        )
    return body


async def send_message(
    dto: SendMessageDTO,
    principal: Principal,
    uow: UnitOfWork,
    broker: Broker,
) -> MessageView:
    """Append a message, flag it unread for everyone else and push it to all participants."""
    body = validate_body(dto.body)

    conversation = await uow.conversations.get_by_id(dto.conversation_id)
    conversation = assert_participant(
        principal.user_id, conversation,
        "You are not authorized to send messages to this conversation",
    )
    if not conversation.can_reply:
        raise ForbiddenError("This conversation does not allow replies")

    if dto.parent_message_id is not None:
        parent = await uow.messages.get(dto.conversation_id, dto.parent_message_id)
        if parent is None:
            raise NotFoundError("Parent message not found")

    now = datetime.now(timezone.utc)
    msg = await uow.messages_w.append(
        Message(
            id=uuid.uuid4(),
            conversation_id=dto.conversation_id,
            sender_id=principal.user_id,
            body=body,
            parent_message_id=dto.parent_message_id,
            created_at=now,
        )
    )
    await uow.conversations_w.touch(dto.conversation_id, now)
    await uow.commit()

    for participant_id in conversation.participants:
        if participant_id == principal.user_id:
            continue
        await run_step(
            uow,
            lambda: uow.memberships_w.mark_unread(participant_id, dto.conversation_id),
            "unread flag for %s in %s",
            participant_id, dto.conversation_id,
        )

    names = await resolve_usernames([principal.user_id], uow)
    view = MessageView(msg, names[principal.user_id])
    await publish_to(
        broker,
        conversation.participants,
        EventName.MESSAGE_NEW,
        events.message_new(dto.conversation_id, events.view_to_dict(view)),
    )
    return view


async def reply_to_message(
    conversation_id: uuid.UUID,
    parent_message_id: uuid.UUID,
    body: str,
    principal: Principal,
    uow: UnitOfWork,
    broker: Broker,
) -> MessageView:
    return await send_message(
        SendMessageDTO(
            conversation_id=conversation_id,
            body=body,
            parent_message_id=parent_message_id,
        ),
        principal,
        uow,
        broker,
    )


async def delete_message(
    conversation_id: uuid.UUID,
    message_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
    broker: Broker,
) -> None:
    """Remove one message. Only its author may do so; replies keep their parent id."""
    conversation = await uow.conversations.get_by_id(conversation_id)
    conversation = assert_participant(
        principal.user_id, conversation,
        "You are not authorized to delete messages from this conversation",
    )

    msg = await uow.messages.get(conversation_id, message_id)
    if msg is None:
        raise NotFoundError("Message not found")
    if msg.sender_id != principal.user_id:
        raise ForbiddenError("You can only delete your own messages")

    await uow.messages_w.delete(conversation_id, message_id)
    await uow.conversations_w.touch(conversation_id, datetime.now(timezone.utc))
    await uow.commit()

    await publish_to(
        broker,
        conversation.participants,
        EventName.MESSAGE_DELETED,
        events.message_deleted(conversation_id, message_id),
    )
