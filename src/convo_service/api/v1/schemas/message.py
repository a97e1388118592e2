from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from convo_service.config import settings


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1, max_length=settings.MESSAGE_MAX_LENGTH)
    parent_message_id: UUID | None = Field(default=None, alias="parentMessageId")


class MessageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    sender: str = Field(alias="from")
    message: str
    time: str
    sender_username: str = Field(alias="senderUsername")
    parent_message_id: str | None = Field(default=None, alias="parentMessageId")
