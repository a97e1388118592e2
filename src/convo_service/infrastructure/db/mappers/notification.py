from __future__ import annotations

from convo_service.domain.entities.notification import Notification
from convo_service.infrastructure.db.models.notification import NotificationModel


def model_to_entity(model: NotificationModel) -> Notification:
    return Notification(
        id=model.id,
        user_id=model.user_id,
        title=model.title,
        message=model.message,
        icon=model.icon,
        unread=model.unread,
        created_at=model.created_at,
    )


def entity_to_model(entity: Notification) -> NotificationModel:
    return NotificationModel(
        id=entity.id,
        user_id=entity.user_id,
        title=entity.title,
        message=entity.message,
        icon=entity.icon,
        unread=entity.unread,
        created_at=entity.created_at,
    )
