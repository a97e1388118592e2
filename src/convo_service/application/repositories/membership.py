from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from convo_service.domain.entities.membership import Membership


class MembershipReader(Protocol):
    async def get(self, user_id: str, conversation_id: UUID) -> Membership | None: ...

    async def list_for_user(self, user_id: str) -> list[Membership]: ...

    async def has_any_unread(self, user_id: str) -> bool: ...


class MembershipWriter(Protocol):
    async def upsert(
        self,
        user_id: str,
        conversation_id: UUID,
        *,
        unread: bool,
        last_read_at: datetime | None = None,
    ) -> None:
        """Create the record or overwrite its read state."""
        ...

    async def mark_unread(self, user_id: str, conversation_id: UUID) -> None:
        """Idempotent; creates the record when missing."""
        ...

    async def mark_read(self, user_id: str, conversation_id: UUID, ts: datetime) -> None:
        """Idempotent; creates the record when missing."""
        ...

    async def drop(self, user_id: str, conversation_id: UUID) -> None: ...

    async def drop_all_for_conversation(self, conversation_id: UUID) -> None: ...

    async def clear_all(self) -> None: ...
