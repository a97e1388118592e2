from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from convo_service.application.dto.message import MessageView
from convo_service.domain.entities.conversation import Conversation, ParticipantInfo


@dataclass(frozen=True, slots=True)
class MembershipChange:
    """Outcome of a leave/remove: the updated conversation, or deleted=True."""

    conversation_id: UUID
    conversation: Conversation | None
    deleted: bool = False


@dataclass(frozen=True, slots=True)
class BroadcastResult:
    success_count: int
    error_count: int


@dataclass(frozen=True, slots=True)
class PurgeResult:
    conversations_deleted: int
    messages_deleted: int


@dataclass(frozen=True, slots=True)
class AccountStatus:
    unread_messages: bool
    unread_notifications: bool


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    """A conversation plus the fields derived for one viewer."""

    conversation: Conversation
    name: str
    participant_info: list[ParticipantInfo]
    last_message: str
    last_message_time: datetime
    unread: bool
    message_count: int
    messages: list[MessageView] | None = None
