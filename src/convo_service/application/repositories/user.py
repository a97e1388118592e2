from __future__ import annotations

from typing import Protocol

from convo_service.domain.entities.user import User


class UserDirectory(Protocol):
    """Read-only lookup into the external user directory."""

    async def get(self, user_id: str) -> User | None: ...

    async def get_many(self, user_ids: list[str]) -> dict[str, User]: ...

    async def list_all(self) -> list[User]: ...
