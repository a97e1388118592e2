from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from convo_service.application.dto import events
from convo_service.application.dto.conversation import BroadcastResult, PurgeResult
from convo_service.application.dto.message import MessageView
from convo_service.application.dto.principal import Principal
from convo_service.application.exceptions import ValidationError
from convo_service.application.policies.permissions import assert_admin
from convo_service.application.ports.broker import Broker
from convo_service.application.uow import UnitOfWork
from convo_service.config import settings
from convo_service.domain.entities.conversation import Conversation
from convo_service.domain.entities.message import Message
from convo_service.domain.entities.user import User
from convo_service.domain.value_objects.enums import EventName
from convo_service.services._shared import build_summary, publish_to
from convo_service.services.message_service import validate_body

logger = logging.getLogger(__name__)


async def broadcast_system_message(
    body: str,
    conversation_title: str | None,
    principal: Principal,
    uow: UnitOfWork,
    broker: Broker,
) -> BroadcastResult:
    """Deliver a message from the system actor to every user.

    Each recipient is handled on its own: a failure is logged, rolled back
    and counted, and the batch moves on to the next user.
    """
    assert_admin(principal)
    body = validate_body(body)
    title = (conversation_title or "").strip() or settings.SYSTEM_CONVERSATION_TITLE
    if len(title) > settings.CONVERSATION_NAME_MAX_LENGTH:
        raise ValidationError(
            "Conversation title too long",
            errors=[{"path": "conversationTitle", "message": "Conversation title too long"}],
        )

    success_count = 0
    error_count = 0
    for user in await uow.users.list_all():
        if user.id == settings.SYSTEM_USER_ID:
            continue
        try:
            await _deliver(user, body, title, uow, broker)
        except Exception:
            logger.exception("Broadcast to %s failed", user.id)
            await uow.rollback()
            error_count += 1
        else:
            success_count += 1

    logger.info(
        "Broadcast by %s delivered to %d users (%d errors)",
        principal.user_id, success_count, error_count,
    )
    return BroadcastResult(success_count=success_count, error_count=error_count)


async def _deliver(
    user: User,
    body: str,
    title: str,
    uow: UnitOfWork,
    broker: Broker,
) -> None:
    system_id = settings.SYSTEM_USER_ID
    now = datetime.now(timezone.utc)

    conversation = await uow.conversations.find_by_participants_and_name(
        [user.id, system_id], title,
    )
    created = conversation is None
    if conversation is None:
        conversation = await uow.conversations_w.create(
            Conversation(
                id=uuid.uuid4(),
                participants=(user.id, system_id),
                name=title,
                created_by=system_id,
                can_reply=False,
                created_at=now,
                updated_at=now,
            )
        )

    msg = await uow.messages_w.append(
        Message(
            id=uuid.uuid4(),
            conversation_id=conversation.id,
            sender_id=system_id,
            body=body,
            parent_message_id=None,
            created_at=now,
        )
    )
    if not created:
        await uow.conversations_w.touch(conversation.id, now)
    await uow.commit()

    if created:
        await uow.memberships_w.upsert(user.id, conversation.id, unread=True)
        await uow.memberships_w.upsert(system_id, conversation.id, unread=False)
    else:
        await uow.memberships_w.mark_unread(user.id, conversation.id)
    await uow.commit()

    if created:
        summary = await build_summary(conversation, uow, unread=True)
        await publish_to(
            broker,
            [user.id],
            EventName.CONVERSATION_NEW,
            events.conversation_new(events.summary_to_dict(summary)),
        )
    view = MessageView(msg, settings.SYSTEM_USERNAME)
    await publish_to(
        broker,
        conversation.participants,
        EventName.MESSAGE_NEW,
        events.message_new(conversation.id, events.view_to_dict(view)),
    )


async def purge_all(principal: Principal, uow: UnitOfWork) -> PurgeResult:
    """Delete every conversation and clear every membership index. Nothing is pushed."""
    assert_admin(principal)
    conversations_deleted, messages_deleted = await uow.conversations_w.delete_all()
    await uow.memberships_w.clear_all()
    await uow.commit()
    logger.warning(
        "Purge by %s removed %d conversations and %d messages",
        principal.user_id, conversations_deleted, messages_deleted,
    )
    return PurgeResult(
        conversations_deleted=conversations_deleted,
        messages_deleted=messages_deleted,
    )
