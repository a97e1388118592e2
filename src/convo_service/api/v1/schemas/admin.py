from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from convo_service.config import settings
from convo_service.domain.value_objects.enums import NotificationIcon


class BroadcastRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1, max_length=settings.MESSAGE_MAX_LENGTH)
    conversation_title: str | None = Field(
        default=None,
        alias="conversationTitle",
        max_length=settings.CONVERSATION_NAME_MAX_LENGTH,
    )


class BroadcastResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success_count: int = Field(alias="successCount")
    error_count: int = Field(alias="errorCount")


class PurgeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages_deleted: int = Field(alias="messagesDeleted")
    conversations_deleted: int = Field(alias="conversationsDeleted")


class PushNotificationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=5000)
    icon: NotificationIcon = NotificationIcon.ANNOUNCEMENT
