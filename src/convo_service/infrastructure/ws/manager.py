"""In-process WebSocket connection registry; the default broker backend."""
from __future__ import annotations

import logging
from typing import Any

from convo_service.application.ports.broker import Connection
from convo_service.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks live connections per user id and pushes events to them.

    A user may hold any number of connections (tabs, devices); each one gets
    every event addressed to that user.
    """

    def __init__(self) -> None:
        self._connections: dict[str, set[Connection]] = {}
        self._owners: dict[Connection, str] = {}

    def register(self, user_id: str, connection: Connection) -> None:
        self._connections.setdefault(user_id, set()).add(connection)
        self._owners[connection] = user_id
        logger.debug("WS connected: %s (users=%d)", user_id, len(self._connections))

    def unregister(self, connection: Connection) -> None:
        user_id = self._owners.pop(connection, None)
        if user_id is None:
            return
        conns = self._connections.get(user_id)
        if conns:
            conns.discard(connection)
            if not conns:
                del self._connections[user_id]
        logger.debug("WS disconnected: %s", user_id)

    def connection_count(self, user_id: str) -> int:
        return len(self._connections.get(user_id, ()))

    async def publish(self, user_id: str, event: str, payload: dict[str, Any]) -> None:
        """Send one event to every connection of user_id. Never raises."""
        conns = tuple(self._connections.get(user_id, ()))
        if not conns:
            return
        raw = WsOutbound(type=event, data=payload).model_dump_json()
        dead: list[Connection] = []
        for conn in conns:
            try:
                await conn.send_text(raw)
            except Exception:
                logger.warning("Dropping dead connection of %s", user_id, exc_info=True)
                dead.append(conn)
        for conn in dead:
            self.unregister(conn)
