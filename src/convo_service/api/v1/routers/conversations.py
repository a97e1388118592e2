from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, status

from convo_service.api.deps import BrokerDep, CurrentPrincipal, UoWDep
from convo_service.api.v1.schemas.common import ApiResponse
from convo_service.api.v1.schemas.conversation import (
    AddParticipantsRequest,
    ConversationResponse,
    ConversationSummaryResponse,
    CreateConversationRequest,
    LeaveResponse,
    RenameConversationRequest,
)
from convo_service.application.dto import events
from convo_service.application.dto.conversation import ConversationSummary, MembershipChange
from convo_service.domain.entities.conversation import Conversation
from convo_service.services import conversation_service, read_state_service

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


def _summary(summary: ConversationSummary) -> ConversationSummaryResponse:
    return ConversationSummaryResponse.model_validate(events.summary_to_dict(summary))


def _record(conversation: Conversation) -> ConversationResponse:
    return ConversationResponse.model_validate(events.conversation_to_dict(conversation))


def _change(change: MembershipChange) -> LeaveResponse:
    return LeaveResponse(
        conversation_id=str(change.conversation_id),
        deleted=change.deleted,
        conversation=_record(change.conversation) if change.conversation else None,
    )


@router.get("", response_model=ApiResponse[list[ConversationSummaryResponse]])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[list[ConversationSummaryResponse]]:
    summaries = await conversation_service.list_user_conversations(principal, uow)
    return ApiResponse(
        message="Conversations retrieved successfully",
        data=[_summary(s) for s in summaries],
    )


@router.post(
    "",
    response_model=ApiResponse[ConversationSummaryResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_conversation(
    body: CreateConversationRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    broker: BrokerDep,
) -> ApiResponse[ConversationSummaryResponse]:
    summary = await conversation_service.create_conversation(
        principal, body.participants, body.initial_message, uow, broker,
    )
    return ApiResponse(message="Conversation created successfully", data=_summary(summary))


@router.get("/{conversation_id}", response_model=ApiResponse[ConversationSummaryResponse])
async def get_conversation(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[ConversationSummaryResponse]:
    summary = await conversation_service.get_conversation(conversation_id, principal, uow)
    return ApiResponse(message="Conversation retrieved successfully", data=_summary(summary))


@router.put("/{conversation_id}/read", response_model=ApiResponse[None])
async def mark_read(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[None]:
    await read_state_service.mark_read(conversation_id, principal, uow)
    return ApiResponse(message="Conversation marked as read")


@router.put("/{conversation_id}/name", response_model=ApiResponse[ConversationResponse])
async def rename_conversation(
    conversation_id: UUID,
    body: RenameConversationRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    broker: BrokerDep,
) -> ApiResponse[ConversationResponse]:
    conv = await conversation_service.rename_conversation(
        conversation_id, principal, body.name, uow, broker,
    )
    return ApiResponse(message="Conversation name updated successfully", data=_record(conv))


@router.post(
    "/{conversation_id}/participants",
    response_model=ApiResponse[ConversationResponse],
)
async def add_participants(
    conversation_id: UUID,
    body: AddParticipantsRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    broker: BrokerDep,
) -> ApiResponse[ConversationResponse]:
    conv = await conversation_service.add_participants(
        conversation_id, principal, body.participant_ids, uow, broker,
    )
    return ApiResponse(message="Participants added successfully", data=_record(conv))


@router.delete(
    "/{conversation_id}/participants/{participant_id}",
    response_model=ApiResponse[LeaveResponse],
)
async def remove_participant(
    conversation_id: UUID,
    participant_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
    broker: BrokerDep,
) -> ApiResponse[LeaveResponse]:
    change = await conversation_service.remove_participant(
        conversation_id, principal, participant_id, uow, broker,
    )
    return ApiResponse(message="Participant removed successfully", data=_change(change))


@router.post("/{conversation_id}/leave", response_model=ApiResponse[LeaveResponse])
async def leave_conversation(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    broker: BrokerDep,
) -> ApiResponse[LeaveResponse]:
    change = await conversation_service.leave_conversation(
        conversation_id, principal, uow, broker,
    )
    return ApiResponse(message="Left conversation successfully", data=_change(change))
