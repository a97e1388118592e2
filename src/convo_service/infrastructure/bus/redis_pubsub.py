"""Redis Pub/Sub broker: publish side + subscriber background task."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis

from convo_service.application.ports.broker import Connection
from convo_service.infrastructure.bus.serializer import deserialize_event, serialize_event
from convo_service.infrastructure.ws.manager import ConnectionManager

logger = logging.getLogger(__name__)


class RedisBroker:
    """Fans events out through a Redis channel so every instance can deliver them.

    Connections still live in the local ConnectionManager; the subscriber on
    each instance hands incoming events to it.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        local: ConnectionManager,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._local = local

    def register(self, user_id: str, connection: Connection) -> None:
        self._local.register(user_id, connection)

    def unregister(self, connection: Connection) -> None:
        self._local.unregister(connection)

    async def publish(self, user_id: str, event: str, payload: dict[str, Any]) -> None:
        try:
            await self._redis.publish(self._channel, serialize_event(user_id, event, payload))
        except Exception:
            logger.exception("Redis publish of %s for %s failed", event, user_id)


OnEventCallback = Callable[[str, str, dict[str, Any]], Coroutine[Any, Any, None]]


class RedisPubSubSubscriber:
    """Background task that listens to a Redis channel and dispatches events."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnEventCallback,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis Pub/Sub subscriber stopped")

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    user_id, event, data = deserialize_event(message["data"])
                    await self._callback(user_id, event, data)
                except Exception:
                    logger.exception("Error processing pubsub message")
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()
