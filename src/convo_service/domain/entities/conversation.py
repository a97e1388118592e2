from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from convo_service.domain.entities.message import Message

UNKNOWN_USERNAME = "Unknown"


@dataclass(frozen=True, slots=True)
class Conversation:
    id: UUID
    participants: tuple[str, ...]
    name: str | None
    created_by: str | None
    can_reply: bool
    created_at: datetime
    updated_at: datetime

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participants

    def real_participants(self, system_user_id: str) -> tuple[str, ...]:
        return tuple(p for p in self.participants if p != system_user_id)


@dataclass(frozen=True, slots=True)
class LastMessageInfo:
    last_message: str
    last_message_time: datetime


@dataclass(frozen=True, slots=True)
class ParticipantInfo:
    id: str
    username: str


def last_message_info(
    conversation: Conversation, last: Message | None
) -> LastMessageInfo:
    """Derive the list preview from the newest message, or fall back to updated_at."""
    if last is None:
        return LastMessageInfo("", conversation.updated_at)
    return LastMessageInfo(last.body or "", last.created_at)


def display_name(conversation: Conversation, usernames: dict[str, str]) -> str:
    """Stored name if present, else participant usernames joined in insertion order."""
    if conversation.name:
        return conversation.name
    return ", ".join(
        usernames.get(p, UNKNOWN_USERNAME) for p in conversation.participants
    )
