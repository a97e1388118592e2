from __future__ import annotations

from fastapi import APIRouter, status

from convo_service.api.deps import BrokerDep, CurrentAdmin, UoWDep
from convo_service.api.v1.routers.notifications import notification_response
from convo_service.api.v1.schemas.admin import (
    BroadcastRequest,
    BroadcastResponse,
    PurgeResponse,
    PushNotificationRequest,
)
from convo_service.api.v1.schemas.common import ApiResponse
from convo_service.api.v1.schemas.notification import NotificationResponse
from convo_service.services import admin_service, notification_service

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.post("/messages/broadcast", response_model=ApiResponse[BroadcastResponse])
async def broadcast(
    body: BroadcastRequest,
    admin: CurrentAdmin,
    uow: UoWDep,
    broker: BrokerDep,
) -> ApiResponse[BroadcastResponse]:
    result = await admin_service.broadcast_system_message(
        body.message, body.conversation_title, admin, uow, broker,
    )
    return ApiResponse(
        message=f"Message broadcast to {result.success_count} users",
        data=BroadcastResponse(
            success_count=result.success_count,
            error_count=result.error_count,
        ),
    )


@router.delete("/messages", response_model=ApiResponse[PurgeResponse])
async def purge_messages(
    admin: CurrentAdmin,
    uow: UoWDep,
) -> ApiResponse[PurgeResponse]:
    result = await admin_service.purge_all(admin, uow)
    return ApiResponse(
        message="All messages deleted",
        data=PurgeResponse(
            messages_deleted=result.messages_deleted,
            conversations_deleted=result.conversations_deleted,
        ),
    )


@router.post(
    "/notifications",
    response_model=ApiResponse[NotificationResponse],
    status_code=status.HTTP_201_CREATED,
)
async def push_notification(
    body: PushNotificationRequest,
    admin: CurrentAdmin,
    uow: UoWDep,
    broker: BrokerDep,
) -> ApiResponse[NotificationResponse]:
    notification = await notification_service.push_notification(
        body.user_id, body.title, body.message, body.icon, uow, broker,
    )
    return ApiResponse(message="Notification sent", data=notification_response(notification))
