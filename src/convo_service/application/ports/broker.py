from __future__ import annotations

from typing import Any, Protocol


class Connection(Protocol):
    """A live client connection that accepts text frames."""

    async def send_text(self, data: str) -> None: ...


class Broker(Protocol):
    """Maps user ids to live connections and pushes named events to them.

    Delivery is best-effort: publishing to a user with no live connection is
    a silent no-op and implementations never raise to the caller.
    """

    def register(self, user_id: str, connection: Connection) -> None: ...

    def unregister(self, connection: Connection) -> None: ...

    async def publish(self, user_id: str, event: str, payload: dict[str, Any]) -> None: ...
