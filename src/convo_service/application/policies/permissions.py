from __future__ import annotations

from convo_service.application.dto.principal import Principal
from convo_service.application.exceptions import ForbiddenError, NotFoundError
from convo_service.domain.entities.conversation import Conversation


def assert_participant(
    user_id: str,
    conversation: Conversation | None,
    forbidden_detail: str = "Not a participant of this conversation",
) -> Conversation:
    """Raise if conversation doesn't exist or user_id is not one of its participants."""
    if conversation is None:
        raise NotFoundError("Conversation not found")

    if not conversation.has_participant(user_id):
        raise ForbiddenError(forbidden_detail)

    return conversation


def assert_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise ForbiddenError("Admin access required")
