from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from convo_service.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: UUID) -> Conversation | None: ...

    async def list_for_participant(
        self, user_id: str, conversation_ids: list[UUID]
    ) -> list[Conversation]:
        """Conversations among conversation_ids whose participants include user_id."""
        ...

    async def find_by_participants_and_name(
        self, participants: list[str], name: str
    ) -> Conversation | None:
        """Conversation with exactly this participant set and this stored name."""
        ...


class ConversationWriter(Protocol):
    async def create(self, conversation: Conversation) -> Conversation: ...

    async def set_name(self, conversation_id: UUID, name: str | None, ts: datetime) -> None: ...

    async def add_participants(
        self, conversation_id: UUID, user_ids: list[str], ts: datetime
    ) -> None: ...

    async def remove_participant(
        self, conversation_id: UUID, user_id: str, ts: datetime
    ) -> None: ...

    async def touch(self, conversation_id: UUID, ts: datetime) -> None: ...

    async def delete(self, conversation_id: UUID) -> None: ...

    async def delete_all(self) -> tuple[int, int]:
        """Delete every conversation. Return (conversations, messages) deleted."""
        ...
