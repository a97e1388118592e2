"""Helpers shared by the service modules: username lookup, summaries, fan-out."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Iterable

from convo_service.application.dto.conversation import ConversationSummary
from convo_service.application.dto.message import MessageView
from convo_service.application.ports.broker import Broker
from convo_service.application.uow import UnitOfWork
from convo_service.config import settings
from convo_service.domain.entities.conversation import (
    UNKNOWN_USERNAME,
    Conversation,
    ParticipantInfo,
    display_name,
    last_message_info,
)

logger = logging.getLogger(__name__)


async def resolve_usernames(user_ids: Iterable[str], uow: UnitOfWork) -> dict[str, str]:
    """Map every id to a display name; unresolvable ids map to "Unknown"."""
    ids = list(dict.fromkeys(user_ids))
    lookup = [uid for uid in ids if uid != settings.SYSTEM_USER_ID]
    users = await uow.users.get_many(lookup) if lookup else {}
    names: dict[str, str] = {}
    for uid in ids:
        if uid == settings.SYSTEM_USER_ID:
            names[uid] = settings.SYSTEM_USERNAME
        elif uid in users:
            names[uid] = users[uid].username
        else:
            names[uid] = UNKNOWN_USERNAME
    return names


async def build_summary(
    conversation: Conversation,
    uow: UnitOfWork,
    *,
    unread: bool,
    with_messages: bool = False,
) -> ConversationSummary:
    messages = None
    if with_messages:
        history = await uow.messages.list_messages(conversation.id)
        names = await resolve_usernames(
            [*conversation.participants, *(m.sender_id for m in history)], uow,
        )
        messages = [MessageView(m, names[m.sender_id]) for m in history]
        last = history[-1] if history else None
        count = len(history)
    else:
        names = await resolve_usernames(conversation.participants, uow)
        last = await uow.messages.latest(conversation.id)
        count = await uow.messages.count(conversation.id)

    info = last_message_info(conversation, last)
    return ConversationSummary(
        conversation=conversation,
        name=display_name(conversation, names),
        participant_info=[ParticipantInfo(p, names[p]) for p in conversation.participants],
        last_message=info.last_message,
        last_message_time=info.last_message_time,
        unread=unread,
        message_count=count,
        messages=messages,
    )


async def run_step(
    uow: UnitOfWork,
    step: Callable[[], Awaitable[None]],
    description: str,
    *args: Any,
) -> bool:
    """Run and commit one secondary write; on failure log, roll back and carry on."""
    try:
        await step()
        await uow.commit()
    except Exception:
        logger.exception("Skipped step: " + description, *args)
        await uow.rollback()
        return False
    return True


async def publish_to(
    broker: Broker,
    user_ids: Iterable[str],
    event: str,
    payload: dict[str, Any],
) -> None:
    """Push one event to every listed user except the system actor."""
    for user_id in dict.fromkeys(user_ids):
        if user_id == settings.SYSTEM_USER_ID:
            continue
        await broker.publish(user_id, event, payload)
