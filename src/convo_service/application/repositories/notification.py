from __future__ import annotations

from typing import Protocol
from uuid import UUID

from convo_service.domain.entities.notification import Notification


class NotificationReader(Protocol):
    async def list_recent(self, user_id: str, *, limit: int = 10) -> list[Notification]:
        """Newest first."""
        ...

    async def has_any_unread(self, user_id: str) -> bool: ...


class NotificationWriter(Protocol):
    async def add(self, notification: Notification) -> Notification: ...

    async def mark_all_read(self, user_id: str) -> None: ...

    async def mark_read(self, user_id: str, notification_id: UUID) -> Notification | None:
        """Flip one notification. None if it does not belong to user_id."""
        ...
