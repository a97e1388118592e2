from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from convo_service.domain.entities.conversation import Conversation
from convo_service.infrastructure.db.mappers import conversation as mapper
from convo_service.infrastructure.db.models.conversation import ConversationModel
from convo_service.infrastructure.db.models.message import MessageModel
from convo_service.infrastructure.db.models.participant import ParticipantModel


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        stmt = (
            select(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_participant(
        self,
        user_id: str,
        conversation_ids: list[UUID],
    ) -> list[Conversation]:
        if not conversation_ids:
            return []
        stmt = (
            select(ConversationModel)
            .join(
                ParticipantModel,
                ParticipantModel.conversation_id == ConversationModel.id,
            )
            .where(
                ParticipantModel.user_id == user_id,
                ConversationModel.id.in_(conversation_ids),
            )
            .order_by(ConversationModel.updated_at.desc())
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def find_by_participants_and_name(
        self,
        participants: list[str],
        name: str,
    ) -> Conversation | None:
        wanted = set(participants)
        stmt = (
            select(ConversationModel)
            .join(
                ParticipantModel,
                ParticipantModel.conversation_id == ConversationModel.id,
            )
            .where(
                ParticipantModel.user_id == participants[0],
                ConversationModel.name == name,
            )
            .order_by(ConversationModel.created_at.asc())
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        for model in result.scalars().all():
            if {p.user_id for p in model.participants} == wanted:
                return mapper.model_to_entity(model)
        return None


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, conversation: Conversation) -> Conversation:
        model = mapper.entity_to_model(conversation)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def set_name(self, conversation_id: UUID, name: str | None, ts: datetime) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(name=name, updated_at=ts)
        )
        await self._session.execute(stmt)

    async def add_participants(
        self,
        conversation_id: UUID,
        user_ids: list[str],
        ts: datetime,
    ) -> None:
        result = await self._session.execute(
            select(func.coalesce(func.max(ParticipantModel.position), -1))
            .where(ParticipantModel.conversation_id == conversation_id)
        )
        position = result.scalar_one()
        for user_id in user_ids:
            position += 1
            self._session.add(
                ParticipantModel(
                    conversation_id=conversation_id,
                    user_id=user_id,
                    position=position,
                    joined_at=ts,
                )
            )
        await self._session.flush()
        await self.touch(conversation_id, ts)

    async def remove_participant(
        self,
        conversation_id: UUID,
        user_id: str,
        ts: datetime,
    ) -> None:
        stmt = delete(ParticipantModel).where(
            ParticipantModel.conversation_id == conversation_id,
            ParticipantModel.user_id == user_id,
        )
        await self._session.execute(stmt)
        await self.touch(conversation_id, ts)

    async def touch(self, conversation_id: UUID, ts: datetime) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(updated_at=ts)
        )
        await self._session.execute(stmt)

    async def delete(self, conversation_id: UUID) -> None:
        # participants and messages go with it (ON DELETE CASCADE)
        stmt = delete(ConversationModel).where(ConversationModel.id == conversation_id)
        await self._session.execute(stmt)

    async def delete_all(self) -> tuple[int, int]:
        messages = await self._session.execute(delete(MessageModel))
        conversations = await self._session.execute(delete(ConversationModel))
        return conversations.rowcount or 0, messages.rowcount or 0
