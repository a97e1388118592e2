from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from convo_service.application.dto import events
from convo_service.application.dto.conversation import ConversationSummary, MembershipChange
from convo_service.application.dto.principal import Principal
from convo_service.application.exceptions import NotFoundError, ValidationError
from convo_service.application.policies.permissions import assert_participant
from convo_service.application.ports.broker import Broker
from convo_service.application.uow import UnitOfWork
from convo_service.config import settings
from convo_service.domain.entities.conversation import Conversation
from convo_service.domain.entities.message import Message
from convo_service.domain.value_objects.enums import EventName
from convo_service.services._shared import build_summary, publish_to, run_step
from convo_service.services.message_service import validate_body

logger = logging.getLogger(__name__)


def _validate_participant_ids(ids: list[str], field: str) -> list[str]:
    cleaned = [i for i in dict.fromkeys(ids) if i]
    if not cleaned:
        raise ValidationError(
            f"{field} array is required",
            errors=[{"path": field, "message": "At least one participant is required"}],
        )
    if len(cleaned) > settings.MAX_PARTICIPANTS:
        raise ValidationError(
            "Too many participants",
            errors=[{"path": field, "message": "Too many participants"}],
        )
    return cleaned


async def create_conversation(
    principal: Principal,
    participants: list[str],
    initial_message: str | None,
    uow: UnitOfWork,
    broker: Broker,
) -> ConversationSummary:
    """Create a conversation with the caller included, optionally seeding one message."""
    requested = _validate_participant_ids(participants, "participants")
    if initial_message is not None:
        initial_message = validate_body(initial_message)

    creator = principal.user_id
    everyone = list(dict.fromkeys([creator, *requested]))

    now = datetime.now(timezone.utc)
    conversation = Conversation(
        id=uuid.uuid4(),
        participants=tuple(everyone),
        name=None,
        created_by=creator,
        can_reply=True,
        created_at=now,
        updated_at=now,
    )
    conversation = await uow.conversations_w.create(conversation)
    if initial_message:
        await uow.messages_w.append(
            Message(
                id=uuid.uuid4(),
                conversation_id=conversation.id,
                sender_id=creator,
                body=initial_message,
                parent_message_id=None,
                created_at=now,
            )
        )
    await uow.commit()
    logger.info(
        "Conversation %s created by %s with %d participants",
        conversation.id, creator, len(everyone),
    )

    for participant_id in everyone:
        is_creator = participant_id == creator
        await run_step(
            uow,
            lambda: uow.memberships_w.upsert(
                participant_id,
                conversation.id,
                unread=not is_creator,
                last_read_at=now if is_creator else None,
            ),
            "membership for %s in %s",
            participant_id, conversation.id,
        )

    announced = await build_summary(conversation, uow, unread=True)
    await publish_to(
        broker,
        (p for p in everyone if p != creator),
        EventName.CONVERSATION_NEW,
        events.conversation_new(events.summary_to_dict(announced)),
    )
    return await build_summary(conversation, uow, unread=False, with_messages=True)


async def list_user_conversations(
    principal: Principal,
    uow: UnitOfWork,
) -> list[ConversationSummary]:
    """Conversations indexed for the caller that still list the caller as a participant."""
    memberships = await uow.memberships.list_for_user(principal.user_id)
    unread_by_id = {m.conversation_id: m.unread for m in memberships}
    if not unread_by_id:
        return []

    conversations = await uow.conversations.list_for_participant(
        principal.user_id, list(unread_by_id),
    )
    summaries = [
        await build_summary(c, uow, unread=unread_by_id.get(c.id, False))
        for c in conversations
    ]
    summaries.sort(key=lambda s: s.last_message_time, reverse=True)
    return summaries


async def get_conversation(
    conversation_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> ConversationSummary:
    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_participant(
        principal.user_id, conversation,
        "You are not authorized to view this conversation",
    )
    membership = await uow.memberships.get(principal.user_id, conversation_id)
    return await build_summary(
        conversation,  # type: ignore[arg-type]
        uow,
        unread=membership.unread if membership else False,
        with_messages=True,
    )


async def rename_conversation(
    conversation_id: uuid.UUID,
    principal: Principal,
    name: str | None,
    uow: UnitOfWork,
    broker: Broker,
) -> Conversation:
    """Set or clear the stored name. A cleared name falls back to the derived one."""
    name = (name or "").strip() or None
    if name is not None and len(name) > settings.CONVERSATION_NAME_MAX_LENGTH:
        raise ValidationError(
            "Conversation name too long",
            errors=[{"path": "name", "message": "Conversation name too long"}],
        )

    conversation = await uow.conversations.get_by_id(conversation_id)
    conversation = assert_participant(
        principal.user_id, conversation,
        "You are not authorized to update this conversation",
    )

    await uow.conversations_w.set_name(conversation_id, name, datetime.now(timezone.utc))
    await uow.commit()

    await publish_to(
        broker,
        conversation.participants,
        EventName.CONVERSATION_UPDATE,
        events.conversation_update(conversation_id, {"name": name}),
    )
    return await uow.conversations.get_by_id(conversation_id)  # type: ignore[return-value]


async def add_participants(
    conversation_id: uuid.UUID,
    principal: Principal,
    participant_ids: list[str],
    uow: UnitOfWork,
    broker: Broker,
) -> Conversation:
    """Add users to a conversation. Ids already present are ignored."""
    requested = _validate_participant_ids(participant_ids, "participantIds")

    conversation = await uow.conversations.get_by_id(conversation_id)
    conversation = assert_participant(
        principal.user_id, conversation,
        "You are not authorized to add participants to this conversation",
    )

    added = [i for i in requested if not conversation.has_participant(i)]
    if not added:
        return conversation

    await uow.conversations_w.add_participants(
        conversation_id, added, datetime.now(timezone.utc),
    )
    await uow.commit()

    for user_id in added:
        await run_step(
            uow,
            lambda: uow.memberships_w.mark_unread(user_id, conversation_id),
            "membership for %s in %s",
            user_id, conversation_id,
        )

    updated = await uow.conversations.get_by_id(conversation_id)
    assert updated is not None
    logger.info("Added %s to conversation %s", added, conversation_id)

    await publish_to(
        broker,
        updated.participants,
        EventName.CONVERSATION_UPDATE,
        events.participants_update(updated),
    )
    summary = await build_summary(updated, uow, unread=True)
    await publish_to(
        broker,
        added,
        EventName.CONVERSATION_NEW,
        events.conversation_new(events.summary_to_dict(summary)),
    )
    return updated


async def remove_participant(
    conversation_id: uuid.UUID,
    principal: Principal,
    participant_id: str,
    uow: UnitOfWork,
    broker: Broker,
) -> MembershipChange:
    conversation = await uow.conversations.get_by_id(conversation_id)
    conversation = assert_participant(
        principal.user_id, conversation,
        "You are not authorized to remove participants from this conversation",
    )
    if not conversation.has_participant(participant_id):
        raise NotFoundError("Participant not found in conversation")

    return await _detach(conversation, participant_id, uow, broker)


async def leave_conversation(
    conversation_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
    broker: Broker,
) -> MembershipChange:
    """Leave a conversation; the last real participant leaving deletes it."""
    conversation = await uow.conversations.get_by_id(conversation_id)
    conversation = assert_participant(
        principal.user_id, conversation,
        "You are not authorized to leave this conversation",
    )
    return await _detach(conversation, principal.user_id, uow, broker)


async def _detach(
    conversation: Conversation,
    user_id: str,
    uow: UnitOfWork,
    broker: Broker,
) -> MembershipChange:
    remaining = [
        p for p in conversation.real_participants(settings.SYSTEM_USER_ID) if p != user_id
    ]

    if not remaining:
        await uow.conversations_w.delete(conversation.id)
        await uow.commit()
        for participant_id in conversation.participants:
            await run_step(
                uow,
                lambda: uow.memberships_w.drop(participant_id, conversation.id),
                "dropping membership of %s in %s",
                participant_id, conversation.id,
            )
        logger.info("Conversation %s deleted, no participants left", conversation.id)

        await publish_to(
            broker,
            conversation.participants,
            EventName.CONVERSATION_UPDATE,
            events.conversation_update(conversation.id, {"deleted": True}),
        )
        return MembershipChange(conversation.id, None, deleted=True)

    await uow.conversations_w.remove_participant(
        conversation.id, user_id, datetime.now(timezone.utc),
    )
    await uow.commit()
    await run_step(
        uow,
        lambda: uow.memberships_w.drop(user_id, conversation.id),
        "dropping membership of %s in %s",
        user_id, conversation.id,
    )

    updated = await uow.conversations.get_by_id(conversation.id)
    assert updated is not None
    await publish_to(
        broker,
        [*updated.participants, user_id],
        EventName.CONVERSATION_UPDATE,
        events.participants_update(updated),
    )
    return MembershipChange(conversation.id, updated)
