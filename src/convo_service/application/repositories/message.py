from __future__ import annotations

from typing import Protocol
from uuid import UUID

from convo_service.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_messages(self, conversation_id: UUID) -> list[Message]:
        """All messages in append order."""
        ...

    async def get(self, conversation_id: UUID, message_id: UUID) -> Message | None: ...

    async def latest(self, conversation_id: UUID) -> Message | None: ...

    async def count(self, conversation_id: UUID) -> int: ...


class MessageWriter(Protocol):
    async def append(self, message: Message) -> Message: ...

    async def delete(self, conversation_id: UUID, message_id: UUID) -> None: ...
