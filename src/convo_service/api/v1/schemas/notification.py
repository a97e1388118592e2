from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from convo_service.domain.value_objects.enums import NotificationIcon


class NotificationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    title: str
    message: str
    icon: NotificationIcon
    time: str
    unread: bool


class AccountStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    unread_messages: bool = Field(alias="unreadMessages")
    unread_notifications: bool = Field(alias="unreadNotifications")
