from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from convo_service.api.v1.schemas.message import MessageResponse
from convo_service.config import settings


class CreateConversationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    participants: list[str] = Field(min_length=1, max_length=settings.MAX_PARTICIPANTS)
    initial_message: str | None = Field(
        default=None,
        alias="message",
        max_length=settings.MESSAGE_MAX_LENGTH,
    )


class RenameConversationRequest(BaseModel):
    name: str | None = Field(default=None, max_length=settings.CONVERSATION_NAME_MAX_LENGTH)


class AddParticipantsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    participant_ids: list[str] = Field(
        alias="participantIds",
        min_length=1,
        max_length=settings.MAX_PARTICIPANTS,
    )


class ParticipantInfoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    username: str


class ConversationResponse(BaseModel):
    """Stored conversation record."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    participants: list[str]
    name: str | None
    can_reply: bool = Field(alias="canReply")
    created_by: str | None = Field(alias="createdBy")
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")


class ConversationSummaryResponse(BaseModel):
    """Conversation as seen by one viewer."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    participants: list[str]
    participant_info: list[ParticipantInfoResponse] = Field(alias="participantInfo")
    name: str
    can_reply: bool = Field(alias="canReply")
    created_by: str | None = Field(alias="createdBy")
    last_message: str = Field(alias="lastMessage")
    last_message_time: str = Field(alias="lastMessageTime")
    unread: bool
    updated_at: str = Field(alias="updatedAt")
    message_count: int = Field(alias="messageCount")
    messages: list[MessageResponse] | None = None


class LeaveResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(alias="conversationId")
    deleted: bool
    conversation: ConversationResponse | None = None
