from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, exists, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from convo_service.domain.entities.membership import Membership
from convo_service.infrastructure.db.mappers import membership as mapper
from convo_service.infrastructure.db.models.membership import MembershipModel


class MembershipReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str, conversation_id: UUID) -> Membership | None:
        stmt = select(MembershipModel).where(
            MembershipModel.user_id == user_id,
            MembershipModel.conversation_id == conversation_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_user(self, user_id: str) -> list[Membership]:
        stmt = select(MembershipModel).where(MembershipModel.user_id == user_id)
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def has_any_unread(self, user_id: str) -> bool:
        stmt = select(
            exists().where(
                MembershipModel.user_id == user_id,
                MembershipModel.unread.is_(True),
            )
        )
        result = await self._session.execute(stmt)
        return bool(result.scalar())


class MembershipWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _upsert(self, user_id: str, conversation_id: UUID, **values) -> None:
        stmt = (
            pg_insert(MembershipModel)
            .values(user_id=user_id, conversation_id=conversation_id, **values)
            .on_conflict_do_update(
                constraint="uq_membership_user_conversation",
                set_=values,
            )
        )
        await self._session.execute(stmt)

    async def upsert(
        self,
        user_id: str,
        conversation_id: UUID,
        *,
        unread: bool,
        last_read_at: datetime | None = None,
    ) -> None:
        await self._upsert(user_id, conversation_id, unread=unread, last_read_at=last_read_at)

    async def mark_unread(self, user_id: str, conversation_id: UUID) -> None:
        await self._upsert(user_id, conversation_id, unread=True)

    async def mark_read(self, user_id: str, conversation_id: UUID, ts: datetime) -> None:
        await self._upsert(user_id, conversation_id, unread=False, last_read_at=ts)

    async def drop(self, user_id: str, conversation_id: UUID) -> None:
        stmt = delete(MembershipModel).where(
            MembershipModel.user_id == user_id,
            MembershipModel.conversation_id == conversation_id,
        )
        await self._session.execute(stmt)

    async def drop_all_for_conversation(self, conversation_id: UUID) -> None:
        stmt = delete(MembershipModel).where(MembershipModel.conversation_id == conversation_id)
        await self._session.execute(stmt)

    async def clear_all(self) -> None:
        await self._session.execute(delete(MembershipModel))
