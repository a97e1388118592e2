from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Notification:
    id: UUID
    user_id: str
    title: str
    message: str
    icon: str
    unread: bool
    created_at: datetime
