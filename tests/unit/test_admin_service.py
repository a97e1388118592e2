from __future__ import annotations

import pytest

from convo_service.application.dto.message import SendMessageDTO
from convo_service.application.exceptions import ForbiddenError, ValidationError
from convo_service.config import settings
from convo_service.domain.value_objects.enums import EventName
from convo_service.services import admin_service, message_service
from tests.conftest import ALICE, BOB, CAROL, SYSTEM, make_conversation, make_message


async def _system_conversation(uow, user_id, title=None):
    return await uow.conversations.find_by_participants_and_name(
        [user_id, SYSTEM], title or settings.SYSTEM_CONVERSATION_TITLE,
    )


@pytest.mark.asyncio
async def test_broadcast_isolates_failing_recipient(admin_principal, uow, broker):
    uow.conversations_w.fail_for_users = {BOB}

    result = await admin_service.broadcast_system_message(
        "Maintenance tonight", None, admin_principal, uow, broker,
    )

    assert result.success_count == 2
    assert result.error_count == 1
    assert uow.rollbacks == 1
    for user_id in (ALICE, CAROL):
        conv = await _system_conversation(uow, user_id)
        messages = await uow.messages.list_messages(conv.id)
        assert [(m.sender_id, m.body) for m in messages] == [(SYSTEM, "Maintenance tonight")]
    assert await _system_conversation(uow, BOB) is None


@pytest.mark.asyncio
async def test_broadcast_creates_read_only_conversations(admin_principal, uow, broker):
    await admin_service.broadcast_system_message("Welcome", None, admin_principal, uow, broker)

    conv = await _system_conversation(uow, BOB)
    assert conv.can_reply is False
    assert conv.created_by == SYSTEM
    assert uow.membership(BOB, conv.id).unread is True
    assert uow.membership(SYSTEM, conv.id).unread is False
    assert sorted(broker.recipients(EventName.CONVERSATION_NEW)) == [ALICE, BOB, CAROL]
    assert SYSTEM not in broker.recipients(EventName.MESSAGE_NEW)


@pytest.mark.asyncio
async def test_repeat_broadcast_appends_to_existing_conversation(admin_principal, uow, broker):
    await admin_service.broadcast_system_message("one", None, admin_principal, uow, broker)
    conv = await _system_conversation(uow, BOB)
    await uow.memberships_w.mark_read(BOB, conv.id, conv.created_at)
    broker.published.clear()

    await admin_service.broadcast_system_message("two", None, admin_principal, uow, broker)

    assert await _system_conversation(uow, BOB) == await uow.conversations.get_by_id(conv.id)
    assert [m.body for m in await uow.messages.list_messages(conv.id)] == ["one", "two"]
    assert uow.membership(BOB, conv.id).unread is True
    assert broker.recipients(EventName.CONVERSATION_NEW) == []
    payload = broker.payloads(EventName.MESSAGE_NEW, BOB)[0]
    assert payload["message"]["senderUsername"] == "System"


@pytest.mark.asyncio
async def test_broadcast_with_custom_title(admin_principal, uow, broker):
    await admin_service.broadcast_system_message(
        "Release notes", "Product Updates", admin_principal, uow, broker,
    )

    assert await _system_conversation(uow, BOB, "Product Updates") is not None
    assert await _system_conversation(uow, BOB) is None


@pytest.mark.asyncio
async def test_broadcast_requires_admin(bob, uow, broker):
    with pytest.raises(ForbiddenError):
        await admin_service.broadcast_system_message("hi", None, bob, uow, broker)
    assert uow.conversations._store == {}


@pytest.mark.asyncio
async def test_broadcast_rejects_empty_message(admin_principal, uow, broker):
    with pytest.raises(ValidationError):
        await admin_service.broadcast_system_message(" ", None, admin_principal, uow, broker)


@pytest.mark.asyncio
async def test_recipient_cannot_reply_to_broadcast(admin_principal, bob, uow, broker):
    await admin_service.broadcast_system_message("hi", None, admin_principal, uow, broker)
    conv = await _system_conversation(uow, BOB)

    with pytest.raises(ForbiddenError):
        await message_service.send_message(
            SendMessageDTO(conversation_id=conv.id, body="thanks"), bob, uow, broker,
        )


@pytest.mark.asyncio
async def test_purge_all(admin_principal, uow, broker):
    first = uow.add_conversation(make_conversation(ALICE, BOB))
    second = uow.add_conversation(make_conversation(BOB, CAROL))
    uow.messages._messages.extend([
        make_message(first.id), make_message(first.id), make_message(second.id),
    ])
    uow.set_membership(ALICE, first.id, unread=True)
    uow.set_membership(BOB, second.id, unread=False)

    result = await admin_service.purge_all(admin_principal, uow)

    assert result.conversations_deleted == 2
    assert result.messages_deleted == 3
    assert uow.conversations._store == {}
    assert uow.memberships._records == {}
    assert broker.published == []


@pytest.mark.asyncio
async def test_purge_requires_admin(carol, uow):
    uow.add_conversation(make_conversation(ALICE, BOB))

    with pytest.raises(ForbiddenError):
        await admin_service.purge_all(carol, uow)
    assert len(uow.conversations._store) == 1
