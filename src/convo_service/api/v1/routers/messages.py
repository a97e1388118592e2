from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, status

from convo_service.api.deps import BrokerDep, CurrentPrincipal, UoWDep
from convo_service.api.v1.schemas.common import ApiResponse
from convo_service.api.v1.schemas.message import MessageResponse, SendMessageRequest
from convo_service.application.dto import events
from convo_service.application.dto.message import MessageView, SendMessageDTO
from convo_service.services import message_service

router = APIRouter(prefix="/api/v1/conversations", tags=["messages"])


def _message(view: MessageView) -> MessageResponse:
    return MessageResponse.model_validate(events.view_to_dict(view))


@router.post(
    "/{conversation_id}/messages",
    response_model=ApiResponse[MessageResponse],
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    broker: BrokerDep,
) -> ApiResponse[MessageResponse]:
    view = await message_service.send_message(
        SendMessageDTO(
            conversation_id=conversation_id,
            body=body.message,
            parent_message_id=body.parent_message_id,
        ),
        principal,
        uow,
        broker,
    )
    return ApiResponse(message="Message sent successfully", data=_message(view))


@router.post(
    "/{conversation_id}/messages/{message_id}/replies",
    response_model=ApiResponse[MessageResponse],
    status_code=status.HTTP_201_CREATED,
)
async def reply_to_message(
    conversation_id: UUID,
    message_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    broker: BrokerDep,
) -> ApiResponse[MessageResponse]:
    view = await message_service.reply_to_message(
        conversation_id, message_id, body.message, principal, uow, broker,
    )
    return ApiResponse(message="Reply sent successfully", data=_message(view))


@router.delete("/{conversation_id}/messages/{message_id}", response_model=ApiResponse[None])
async def delete_message(
    conversation_id: UUID,
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    broker: BrokerDep,
) -> ApiResponse[None]:
    await message_service.delete_message(conversation_id, message_id, principal, uow, broker)
    return ApiResponse(message="Message deleted successfully")
