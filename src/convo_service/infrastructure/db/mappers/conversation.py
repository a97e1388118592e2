from __future__ import annotations

from convo_service.domain.entities.conversation import Conversation
from convo_service.infrastructure.db.models.conversation import ConversationModel
from convo_service.infrastructure.db.models.participant import ParticipantModel


def model_to_entity(model: ConversationModel) -> Conversation:
    return Conversation(
        id=model.id,
        participants=tuple(p.user_id for p in model.participants),
        name=model.name,
        created_by=model.created_by,
        can_reply=model.can_reply,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_model(entity: Conversation) -> ConversationModel:
    return ConversationModel(
        id=entity.id,
        name=entity.name,
        created_by=entity.created_by,
        can_reply=entity.can_reply,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
        participants=[
            ParticipantModel(
                conversation_id=entity.id,
                user_id=user_id,
                position=position,
                joined_at=entity.created_at,
            )
            for position, user_id in enumerate(entity.participants)
        ],
    )
