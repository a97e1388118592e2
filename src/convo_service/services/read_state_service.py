from __future__ import annotations

import uuid
from datetime import datetime, timezone

from convo_service.application.dto.conversation import AccountStatus
from convo_service.application.dto.principal import Principal
from convo_service.application.policies.permissions import assert_participant
from convo_service.application.uow import UnitOfWork


async def mark_read(
    conversation_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> None:
    """Acknowledge a conversation. Read state is private, so nothing is published."""
    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_participant(
        principal.user_id, conversation,
        "You are not authorized to mark this conversation as read",
    )
    await uow.memberships_w.mark_read(
        principal.user_id, conversation_id, datetime.now(timezone.utc),
    )
    await uow.commit()


async def account_status(principal: Principal, uow: UnitOfWork) -> AccountStatus:
    return AccountStatus(
        unread_messages=await uow.memberships.has_any_unread(principal.user_id),
        unread_notifications=await uow.notifications.has_any_unread(principal.user_id),
    )
