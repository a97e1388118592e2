"""HTTP client for the conversation API that keeps a ConversationCache in sync."""
from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from convo_service.client.cache import ConversationCache

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class ClientError(Exception):
    """A request failed; ``message`` is the server's message string when it sent one."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ConversationClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        user_id: str,
        *,
        username: str = "",
        http: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._http = http or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._headers = {"Authorization": f"Bearer {token}"}
        self.cache = ConversationCache(user_id=user_id, username=username)
        self._pending_reads: set[str] = set()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> ConversationClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._http.request(
                method, API_PREFIX + path, headers=self._headers, **kwargs,
            )
        except httpx.HTTPError as exc:
            raise ClientError(str(exc) or "Network error") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.is_error or body.get("status") is False:
            raise ClientError(
                body.get("message") or f"Request failed with status {resp.status_code}",
                resp.status_code,
            )
        return body.get("data")

    # --- conversations -----------------------------------------------------

    async def list_conversations(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/conversations")
        self.cache.load_list(data or [])
        return self.cache.summaries()

    async def open_conversation(self, conversation_id: str) -> dict[str, Any]:
        data = await self._request("GET", f"/conversations/{conversation_id}")
        self.cache.load_conversation(data)
        self.cache.open_conversation_id = conversation_id
        self.cache.redirect_requested = False
        return data

    def close_conversation(self) -> None:
        self.cache.open_conversation_id = None

    async def create_conversation(
        self,
        participants: list[str],
        initial_message: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"participants": participants}
        if initial_message:
            payload["message"] = initial_message
        data = await self._request("POST", "/conversations", json=payload)
        self.cache.load_conversation(data)
        return data

    async def send_message(
        self,
        conversation_id: str,
        body: str,
        parent_message_id: str | None = None,
    ) -> dict[str, Any]:
        """Optimistic send: the message shows at once and is rolled back on failure."""
        snapshot = self.cache.snapshot(conversation_id)
        provisional = self.cache.add_provisional(conversation_id, body, parent_message_id)
        if parent_message_id is None:
            path = f"/conversations/{conversation_id}/messages"
        else:
            path = f"/conversations/{conversation_id}/messages/{parent_message_id}/replies"
        try:
            server = await self._request("POST", path, json={"message": body})
        except ClientError:
            self.cache.restore(conversation_id, snapshot)
            raise
        self.cache.confirm(conversation_id, provisional["_id"], server)
        return server

    async def delete_message(self, conversation_id: str, message_id: str) -> None:
        await self._request("DELETE", f"/conversations/{conversation_id}/messages/{message_id}")
        self.cache.apply_event(
            "message:deleted", {"conversationId": conversation_id, "messageId": message_id},
        )

    async def mark_read(self, conversation_id: str) -> None:
        """Mark read; failures are logged and retried on the next call."""
        self._pending_reads.add(conversation_id)
        for cid in sorted(self._pending_reads):
            try:
                await self._request("PUT", f"/conversations/{cid}/read")
            except ClientError as exc:
                logger.warning("Mark read of %s failed: %s", cid, exc.message)
                continue
            self._pending_reads.discard(cid)
            self.cache.mark_read_locally(cid)

    async def rename_conversation(self, conversation_id: str, name: str | None) -> dict[str, Any]:
        data = await self._request(
            "PUT", f"/conversations/{conversation_id}/name", json={"name": name},
        )
        self.cache.apply_event(
            "conversation:update",
            {"conversationId": conversation_id, "update": {"name": data.get("name")}},
        )
        return data

    async def add_participants(self, conversation_id: str, user_ids: list[str]) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/conversations/{conversation_id}/participants",
            json={"participantIds": user_ids},
        )

    async def remove_participant(self, conversation_id: str, user_id: str) -> dict[str, Any]:
        return await self._request(
            "DELETE", f"/conversations/{conversation_id}/participants/{user_id}",
        )

    async def leave_conversation(self, conversation_id: str) -> dict[str, Any]:
        data = await self._request("POST", f"/conversations/{conversation_id}/leave")
        self.cache.conversations.pop(conversation_id, None)
        if self.cache.open_conversation_id == conversation_id:
            self.cache.open_conversation_id = None
        return data

    # --- notifications -----------------------------------------------------

    async def list_notifications(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/notifications")
        self.cache.load_notifications(data or [])
        return self.cache.notifications

    async def mark_all_notifications_read(self) -> None:
        data = await self._request("PUT", "/notifications/read")
        self.cache.load_notifications(data or [])

    # --- push channel ------------------------------------------------------

    def handle_frame(self, raw: str | bytes) -> str | None:
        """Apply one WebSocket frame to the cache. Returns the event name."""
        try:
            frame = json.loads(raw)
            event, data = frame["type"], frame.get("data") or {}
        except (ValueError, KeyError, TypeError):
            logger.warning("Ignoring malformed frame")
            return None
        if event in ("pong", "error"):
            return event
        try:
            self.cache.apply_event(event, data)
        except KeyError:
            logger.warning("Ignoring %s frame with missing fields", event)
        return event
