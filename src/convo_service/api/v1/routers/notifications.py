from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from convo_service.api.deps import BrokerDep, CurrentPrincipal, UoWDep
from convo_service.api.v1.schemas.common import ApiResponse
from convo_service.api.v1.schemas.notification import (
    AccountStatusResponse,
    NotificationResponse,
)
from convo_service.application.dto import events
from convo_service.domain.entities.notification import Notification
from convo_service.services import notification_service, read_state_service

router = APIRouter(prefix="/api/v1", tags=["notifications"])


def notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse.model_validate(events.notification_to_dict(notification))


@router.get("/notifications", response_model=ApiResponse[list[NotificationResponse]])
async def list_notifications(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[list[NotificationResponse]]:
    items = await notification_service.list_notifications(principal, uow)
    return ApiResponse(
        message="Notifications retrieved successfully",
        data=[notification_response(n) for n in items],
    )


@router.put("/notifications/read", response_model=ApiResponse[list[NotificationResponse]])
async def mark_all_read(
    principal: CurrentPrincipal,
    uow: UoWDep,
    broker: BrokerDep,
) -> ApiResponse[list[NotificationResponse]]:
    items = await notification_service.mark_all_read(principal, uow, broker)
    return ApiResponse(
        message="All notifications marked as read",
        data=[notification_response(n) for n in items],
    )


@router.put(
    "/notifications/{notification_id}/read",
    response_model=ApiResponse[NotificationResponse],
)
async def mark_read(
    notification_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    broker: BrokerDep,
) -> ApiResponse[NotificationResponse]:
    notification = await notification_service.mark_read(
        notification_id, principal, uow, broker,
    )
    return ApiResponse(
        message="Notification marked as read",
        data=notification_response(notification),
    )


@router.get("/me/status", response_model=ApiResponse[AccountStatusResponse])
async def account_status(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[AccountStatusResponse]:
    result = await read_state_service.account_status(principal, uow)
    return ApiResponse(
        message="Status retrieved successfully",
        data=AccountStatusResponse(
            unread_messages=result.unread_messages,
            unread_notifications=result.unread_notifications,
        ),
    )
