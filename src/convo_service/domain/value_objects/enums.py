from __future__ import annotations

from enum import StrEnum


class NotificationIcon(StrEnum):
    PERSON = "person"
    SECURITY = "security"
    ANNOUNCEMENT = "announcement"
    MAIL = "mail"
    LOCK = "lock"


class EventName(StrEnum):
    """Named events pushed to live connections."""

    MESSAGE_NEW = "message:new"
    MESSAGE_DELETED = "message:deleted"
    CONVERSATION_NEW = "conversation:new"
    CONVERSATION_UPDATE = "conversation:update"
    NOTIFICATION_NEW = "notification:new"
    NOTIFICATION_UPDATE = "notification:update"


class UserRole(StrEnum):
    ADMIN = "admin"
    BOT = "bot"
