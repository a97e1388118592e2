from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class User:
    """Directory entry. The core only ever reads these."""

    id: str
    username: str
    roles: list[str] = field(default_factory=list)
    avatar: str | None = None
