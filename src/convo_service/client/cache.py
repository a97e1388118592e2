"""Client-side conversation cache with optimistic sends.

Holds the wire dicts exactly as the server sends them (``_id``, ``from``,
``message``, ``time``...). Provisional messages carry a ``temp-<ms>`` id until
the server copy replaces them, either from the HTTP response or from the
``message:new`` push, whichever lands first.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from convo_service.domain.value_objects.enums import EventName

logger = logging.getLogger(__name__)

TEMP_PREFIX = "temp-"
MATCH_WINDOW_SECONDS = 5.0
NOTIFICATION_LIMIT = 10


def _parse_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_provisional(message: dict[str, Any]) -> bool:
    return str(message.get("_id", "")).startswith(TEMP_PREFIX)


def matches_provisional(provisional: dict[str, Any], server: dict[str, Any]) -> bool:
    """Same text, same sender, timestamps within the match window."""
    if not is_provisional(provisional):
        return False
    if provisional.get("message") != server.get("message"):
        return False
    if provisional.get("from") != server.get("from"):
        return False
    delta = _parse_time(provisional["time"]) - _parse_time(server["time"])
    return abs(delta.total_seconds()) <= MATCH_WINDOW_SECONDS


@dataclass
class CachedConversation:
    summary: dict[str, Any]
    messages: list[dict[str, Any]] | None = None


@dataclass
class ConversationCache:
    user_id: str
    username: str = ""
    conversations: dict[str, CachedConversation] = field(default_factory=dict)
    notifications: list[dict[str, Any]] = field(default_factory=list)
    open_conversation_id: str | None = None
    needs_refresh: bool = False
    redirect_requested: bool = False

    # --- loading -----------------------------------------------------------

    def load_list(self, summaries: list[dict[str, Any]]) -> None:
        """Replace the list; message lists already loaded are kept."""
        loaded = self.conversations
        self.conversations = {}
        for summary in summaries:
            cid = summary["_id"]
            previous = loaded.get(cid)
            messages = summary.get("messages")
            if messages is None and previous is not None:
                messages = previous.messages
            self.conversations[cid] = CachedConversation(
                summary={k: v for k, v in summary.items() if k != "messages"},
                messages=list(messages) if messages is not None else None,
            )
        self.needs_refresh = False

    def load_conversation(self, conversation: dict[str, Any]) -> CachedConversation:
        cid = conversation["_id"]
        entry = CachedConversation(
            summary={k: v for k, v in conversation.items() if k != "messages"},
            messages=list(conversation.get("messages") or []),
        )
        self.conversations[cid] = entry
        return entry

    def load_notifications(self, notifications: list[dict[str, Any]]) -> None:
        self.notifications = list(notifications[:NOTIFICATION_LIMIT])

    def get(self, conversation_id: str) -> CachedConversation | None:
        return self.conversations.get(conversation_id)

    def summaries(self) -> list[dict[str, Any]]:
        """Summaries newest activity first."""
        return sorted(
            (c.summary for c in self.conversations.values()),
            key=lambda s: _parse_time(s["lastMessageTime"]) if s.get("lastMessageTime")
            else datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )

    # --- optimistic send ---------------------------------------------------

    def snapshot(self, conversation_id: str) -> CachedConversation | None:
        entry = self.conversations.get(conversation_id)
        return copy.deepcopy(entry) if entry is not None else None

    def restore(self, conversation_id: str, snapshot: CachedConversation | None) -> None:
        if snapshot is None:
            self.conversations.pop(conversation_id, None)
        else:
            self.conversations[conversation_id] = snapshot

    def add_provisional(
        self,
        conversation_id: str,
        body: str,
        parent_message_id: str | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        message: dict[str, Any] = {
            "_id": f"{TEMP_PREFIX}{int(now.timestamp() * 1000)}",
            "from": self.user_id,
            "message": body,
            "time": now.isoformat(),
            "senderUsername": self.username,
        }
        if parent_message_id is not None:
            message["parentMessageId"] = parent_message_id

        entry = self.conversations.get(conversation_id)
        if entry is not None:
            if entry.messages is not None:
                entry.messages.append(message)
            entry.summary["lastMessage"] = body
            entry.summary["lastMessageTime"] = message["time"]
        return message

    def confirm(self, conversation_id: str, provisional_id: str, server: dict[str, Any]) -> None:
        """Swap a provisional entry for the server's copy.

        When the push already delivered it, the provisional entry is gone and
        nothing is added twice.
        """
        entry = self.conversations.get(conversation_id)
        if entry is None:
            return
        messages = entry.messages
        if messages is None:
            self._touch_summary(entry, server)
            self.needs_refresh = True
            return
        if any(m.get("_id") == server["_id"] for m in messages):
            entry.messages = [m for m in messages if m.get("_id") != provisional_id]
        else:
            for i, m in enumerate(messages):
                if m.get("_id") == provisional_id:
                    messages[i] = server
                    break
            else:
                messages.append(server)
        self._touch_summary(entry, server)

    # --- pushed events -----------------------------------------------------

    def apply_event(self, event: str, data: dict[str, Any]) -> None:
        if event == EventName.MESSAGE_NEW:
            self._on_message_new(data["conversationId"], data["message"])
        elif event == EventName.MESSAGE_DELETED:
            self._on_message_deleted(data["conversationId"], data["messageId"])
        elif event == EventName.CONVERSATION_UPDATE:
            self._on_conversation_update(data["conversationId"], data.get("update") or {})
        elif event == EventName.CONVERSATION_NEW:
            conversation = data.get("conversation")
            if conversation and conversation.get("_id") not in self.conversations:
                self.conversations[conversation["_id"]] = CachedConversation(
                    summary={k: v for k, v in conversation.items() if k != "messages"},
                )
            self.needs_refresh = True
        elif event == EventName.NOTIFICATION_NEW:
            self._on_notification_new(data["notification"])
        elif event == EventName.NOTIFICATION_UPDATE:
            self._on_notification_update(data["notificationId"], data.get("update") or {})
        else:
            logger.debug("Ignoring event %s", event)

    def merge_message(self, conversation_id: str, server: dict[str, Any]) -> bool:
        """Merge a server message. Returns False if it was already present."""
        entry = self.conversations.get(conversation_id)
        if entry is None:
            return False
        if entry.messages is not None:
            if any(m.get("_id") == server["_id"] for m in entry.messages):
                return False
            for i, m in enumerate(entry.messages):
                if matches_provisional(m, server):
                    entry.messages[i] = server
                    break
            else:
                entry.messages.append(server)
        else:
            entry.summary["messageCount"] = entry.summary.get("messageCount", 0) + 1
        self._touch_summary(entry, server)
        return True

    def _on_message_new(self, conversation_id: str, message: dict[str, Any]) -> None:
        entry = self.conversations.get(conversation_id)
        if entry is None:
            self.needs_refresh = True
            return
        added = self.merge_message(conversation_id, message)
        if added and message.get("from") != self.user_id:
            if conversation_id != self.open_conversation_id:
                entry.summary["unread"] = True
        self.needs_refresh = True

    def _on_message_deleted(self, conversation_id: str, message_id: str) -> None:
        entry = self.conversations.get(conversation_id)
        if entry is None:
            return
        if entry.messages is not None:
            before = len(entry.messages)
            entry.messages = [m for m in entry.messages if m.get("_id") != message_id]
            if len(entry.messages) != before:
                self._recount(entry)
        self.needs_refresh = True

    def _on_conversation_update(self, conversation_id: str, update: dict[str, Any]) -> None:
        if update.get("deleted"):
            self.conversations.pop(conversation_id, None)
            if conversation_id == self.open_conversation_id:
                self.redirect_requested = True
            self.needs_refresh = True
            return
        entry = self.conversations.get(conversation_id)
        if entry is None:
            return
        if "participants" in update and self.user_id not in update["participants"]:
            # removed from it
            self.conversations.pop(conversation_id, None)
            if conversation_id == self.open_conversation_id:
                self.redirect_requested = True
        else:
            entry.summary.update(update)
        self.needs_refresh = True

    def _on_notification_new(self, notification: dict[str, Any]) -> None:
        self.notifications = [
            n for n in self.notifications if n.get("_id") != notification.get("_id")
        ]
        self.notifications.insert(0, notification)
        del self.notifications[NOTIFICATION_LIMIT:]

    def _on_notification_update(self, notification_id: str, update: dict[str, Any]) -> None:
        for n in self.notifications:
            if notification_id == "all" or n.get("_id") == notification_id:
                n.update(update)

    def mark_read_locally(self, conversation_id: str) -> None:
        entry = self.conversations.get(conversation_id)
        if entry is not None:
            entry.summary["unread"] = False

    @staticmethod
    def _touch_summary(entry: CachedConversation, message: dict[str, Any]) -> None:
        entry.summary["lastMessage"] = message.get("message", "")
        entry.summary["lastMessageTime"] = message.get("time")
        if entry.messages is not None:
            ConversationCache._recount(entry)

    @staticmethod
    def _recount(entry: CachedConversation) -> None:
        if entry.messages is not None:
            entry.summary["messageCount"] = sum(
                1 for m in entry.messages if not is_provisional(m)
            )
