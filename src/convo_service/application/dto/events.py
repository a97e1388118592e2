"""Wire shapes shared by pushed events and HTTP responses.

Keys follow the client contract (``_id``, ``from``, camelCase), timestamps are
ISO-8601 strings.
"""
from __future__ import annotations

from typing import Any
from uuid import UUID

from convo_service.application.dto.conversation import ConversationSummary
from convo_service.application.dto.message import MessageView
from convo_service.domain.entities.conversation import Conversation
from convo_service.domain.entities.message import Message
from convo_service.domain.entities.notification import Notification


def message_to_dict(message: Message, sender_username: str) -> dict[str, Any]:
    data: dict[str, Any] = {
        "_id": str(message.id),
        "from": message.sender_id,
        "message": message.body,
        "time": message.created_at.isoformat(),
        "senderUsername": sender_username,
    }
    if message.parent_message_id is not None:
        data["parentMessageId"] = str(message.parent_message_id)
    return data


def view_to_dict(view: MessageView) -> dict[str, Any]:
    return message_to_dict(view.message, view.sender_username)


def summary_to_dict(summary: ConversationSummary) -> dict[str, Any]:
    conv = summary.conversation
    data: dict[str, Any] = {
        "_id": str(conv.id),
        "participants": list(conv.participants),
        "participantInfo": [
            {"_id": p.id, "username": p.username} for p in summary.participant_info
        ],
        "name": summary.name,
        "canReply": conv.can_reply,
        "createdBy": conv.created_by,
        "lastMessage": summary.last_message,
        "lastMessageTime": summary.last_message_time.isoformat(),
        "unread": summary.unread,
        "updatedAt": conv.updated_at.isoformat(),
        "messageCount": summary.message_count,
    }
    if summary.messages is not None:
        data["messages"] = [view_to_dict(v) for v in summary.messages]
    return data


def notification_to_dict(notification: Notification) -> dict[str, Any]:
    return {
        "_id": str(notification.id),
        "title": notification.title,
        "message": notification.message,
        "icon": notification.icon,
        "time": notification.created_at.isoformat(),
        "unread": notification.unread,
    }


def message_new(conversation_id: UUID, message: dict[str, Any]) -> dict[str, Any]:
    return {"conversationId": str(conversation_id), "message": message}


def message_deleted(conversation_id: UUID, message_id: UUID) -> dict[str, Any]:
    return {"conversationId": str(conversation_id), "messageId": str(message_id)}


def conversation_new(summary: dict[str, Any]) -> dict[str, Any]:
    return {"conversation": summary}


def conversation_update(conversation_id: UUID, update: dict[str, Any]) -> dict[str, Any]:
    return {"conversationId": str(conversation_id), "update": update}


def participants_update(conversation: Conversation) -> dict[str, Any]:
    return conversation_update(
        conversation.id, {"participants": list(conversation.participants)}
    )


def notification_new(notification: Notification) -> dict[str, Any]:
    return {"notification": notification_to_dict(notification)}


def notification_update(notification_id: UUID | str, update: dict[str, Any]) -> dict[str, Any]:
    return {"notificationId": str(notification_id), "update": update}


def conversation_to_dict(conversation: Conversation) -> dict[str, Any]:
    """The stored record alone, without viewer-specific fields."""
    return {
        "_id": str(conversation.id),
        "participants": list(conversation.participants),
        "name": conversation.name,
        "canReply": conversation.can_reply,
        "createdBy": conversation.created_by,
        "createdAt": conversation.created_at.isoformat(),
        "updatedAt": conversation.updated_at.isoformat(),
    }
