from __future__ import annotations

import uuid

import pytest

from convo_service.application.exceptions import NotFoundError, ValidationError
from convo_service.domain.value_objects.enums import EventName
from convo_service.services import notification_service, read_state_service
from tests.conftest import BOB, CAROL


async def _push(uow, broker, title="Hello", message="Welcome aboard", icon="announcement"):
    return await notification_service.push_notification(BOB, title, message, icon, uow, broker)


@pytest.mark.asyncio
async def test_push_stores_unread_and_publishes(uow, broker):
    notification = await _push(uow, broker)

    assert notification.unread is True
    assert notification.icon == "announcement"
    assert broker.recipients(EventName.NOTIFICATION_NEW) == [BOB]
    payload = broker.payloads(EventName.NOTIFICATION_NEW, BOB)[0]
    assert payload["notification"]["_id"] == str(notification.id)
    assert payload["notification"]["title"] == "Hello"


@pytest.mark.asyncio
async def test_list_is_newest_first_and_capped(bob, uow, broker):
    for i in range(12):
        await _push(uow, broker, title=f"n{i}")

    items = await notification_service.list_notifications(bob, uow)

    assert [n.title for n in items] == [f"n{i}" for i in range(11, 1, -1)]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "title, message, icon",
    [
        ("", "body", "mail"),
        ("x" * 201, "body", "mail"),
        ("title", "", "mail"),
        ("title", "x" * 5001, "mail"),
        ("title", "body", "rocket"),
    ],
)
async def test_push_validates(uow, broker, title, message, icon):
    with pytest.raises(ValidationError) as exc_info:
        await _push(uow, broker, title=title, message=message, icon=icon)

    assert exc_info.value.errors
    assert broker.published == []


@pytest.mark.asyncio
async def test_mark_all_read(bob, uow, broker):
    await _push(uow, broker)
    await _push(uow, broker)

    items = await notification_service.mark_all_read(bob, uow, broker)

    assert all(not n.unread for n in items)
    assert broker.payloads(EventName.NOTIFICATION_UPDATE, BOB) == [
        {"notificationId": "all", "update": {"unread": False}},
    ]
    status = await read_state_service.account_status(bob, uow)
    assert status.unread_notifications is False


@pytest.mark.asyncio
async def test_mark_one_read(bob, uow, broker):
    first = await _push(uow, broker)
    await _push(uow, broker)

    updated = await notification_service.mark_read(first.id, bob, uow, broker)

    assert updated.unread is False
    assert broker.payloads(EventName.NOTIFICATION_UPDATE, BOB) == [
        {"notificationId": str(first.id), "update": {"unread": False}},
    ]
    status = await read_state_service.account_status(bob, uow)
    assert status.unread_notifications is True


@pytest.mark.asyncio
async def test_mark_read_of_someone_elses_notification(carol, uow, broker):
    notification = await _push(uow, broker)

    with pytest.raises(NotFoundError):
        await notification_service.mark_read(notification.id, carol, uow, broker)
    with pytest.raises(NotFoundError):
        await notification_service.mark_read(uuid.uuid4(), carol, uow, broker)
    assert broker.recipients(EventName.NOTIFICATION_UPDATE) == []
    assert CAROL not in broker.recipients(EventName.NOTIFICATION_NEW)
