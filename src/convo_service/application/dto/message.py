from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from convo_service.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    conversation_id: UUID
    body: str
    parent_message_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class MessageView:
    """A message with its sender's display name resolved."""

    message: Message
    sender_username: str
