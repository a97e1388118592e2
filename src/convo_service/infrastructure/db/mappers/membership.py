from __future__ import annotations

from convo_service.domain.entities.membership import Membership
from convo_service.infrastructure.db.models.membership import MembershipModel


def model_to_entity(model: MembershipModel) -> Membership:
    return Membership(
        user_id=model.user_id,
        conversation_id=model.conversation_id,
        unread=model.unread,
        last_read_at=model.last_read_at,
    )
