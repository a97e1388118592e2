from __future__ import annotations

from convo_service.domain.entities.message import Message
from convo_service.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        conversation_id=model.conversation_id,
        sender_id=model.sender_id,
        body=model.body,
        parent_message_id=model.parent_message_id,
        created_at=model.created_at,
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        conversation_id=entity.conversation_id,
        sender_id=entity.sender_id,
        body=entity.body,
        parent_message_id=entity.parent_message_id,
        created_at=entity.created_at,
    )
