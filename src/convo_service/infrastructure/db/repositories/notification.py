from __future__ import annotations

from uuid import UUID

from sqlalchemy import exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from convo_service.domain.entities.notification import Notification
from convo_service.infrastructure.db.mappers import notification as mapper
from convo_service.infrastructure.db.models.notification import NotificationModel


class NotificationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_recent(self, user_id: str, *, limit: int = 10) -> list[Notification]:
        stmt = (
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.seq.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def has_any_unread(self, user_id: str) -> bool:
        stmt = select(
            exists().where(
                NotificationModel.user_id == user_id,
                NotificationModel.unread.is_(True),
            )
        )
        result = await self._session.execute(stmt)
        return bool(result.scalar())


class NotificationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, notification: Notification) -> Notification:
        model = mapper.entity_to_model(notification)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def mark_all_read(self, user_id: str) -> None:
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.user_id == user_id,
                NotificationModel.unread.is_(True),
            )
            .values(unread=False)
        )
        await self._session.execute(stmt)

    async def mark_read(self, user_id: str, notification_id: UUID) -> Notification | None:
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            )
            .values(unread=False)
            .returning(NotificationModel)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None
