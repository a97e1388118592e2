from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Membership:
    """Per-user read state for one conversation."""

    user_id: str
    conversation_id: UUID
    unread: bool
    last_read_at: datetime | None
