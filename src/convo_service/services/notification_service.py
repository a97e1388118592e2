from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from convo_service.application.dto import events
from convo_service.application.dto.principal import Principal
from convo_service.application.exceptions import NotFoundError, ValidationError
from convo_service.application.ports.broker import Broker
from convo_service.application.uow import UnitOfWork
from convo_service.config import settings
from convo_service.domain.entities.notification import Notification
from convo_service.domain.value_objects.enums import EventName, NotificationIcon

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 200
MESSAGE_MAX_LENGTH = 5000


def _validate(title: str, message: str, icon: str) -> NotificationIcon:
    errors = []
    if not title or len(title) > TITLE_MAX_LENGTH:
        errors.append({"path": "title", "message": "Title must be 1-200 characters"})
    if not message or len(message) > MESSAGE_MAX_LENGTH:
        errors.append({"path": "message", "message": "Message must be 1-5000 characters"})
    try:
        parsed = NotificationIcon(icon)
    except ValueError:
        errors.append({"path": "icon", "message": f"Unknown icon '{icon}'"})
    if errors:
        raise ValidationError("Validation error", errors=errors)
    return parsed


async def push_notification(
    user_id: str,
    title: str,
    message: str,
    icon: str,
    uow: UnitOfWork,
    broker: Broker,
) -> Notification:
    """Store a notification at the head of the user's list and push it live."""
    parsed_icon = _validate(title, message, icon)
    notification = await uow.notifications_w.add(
        Notification(
            id=uuid.uuid4(),
            user_id=user_id,
            title=title,
            message=message,
            icon=parsed_icon.value,
            unread=True,
            created_at=datetime.now(timezone.utc),
        )
    )
    await uow.commit()
    logger.info("Notification %s pushed to %s", notification.id, user_id)

    await broker.publish(
        user_id, EventName.NOTIFICATION_NEW, events.notification_new(notification),
    )
    return notification


async def list_notifications(principal: Principal, uow: UnitOfWork) -> list[Notification]:
    return await uow.notifications.list_recent(
        principal.user_id, limit=settings.NOTIFICATION_LIST_LIMIT,
    )


async def mark_all_read(
    principal: Principal,
    uow: UnitOfWork,
    broker: Broker,
) -> list[Notification]:
    await uow.notifications_w.mark_all_read(principal.user_id)
    await uow.commit()
    await broker.publish(
        principal.user_id,
        EventName.NOTIFICATION_UPDATE,
        events.notification_update("all", {"unread": False}),
    )
    return await list_notifications(principal, uow)


async def mark_read(
    notification_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
    broker: Broker,
) -> Notification:
    notification = await uow.notifications_w.mark_read(principal.user_id, notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    await uow.commit()
    await broker.publish(
        principal.user_id,
        EventName.NOTIFICATION_UPDATE,
        events.notification_update(notification_id, {"unread": False}),
    )
    return notification
