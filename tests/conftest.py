"""Shared test fixtures."""
from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import pytest

from convo_service.application.dto.principal import Principal
from convo_service.config import settings
from convo_service.domain.entities.conversation import Conversation
from convo_service.domain.entities.membership import Membership
from convo_service.domain.entities.message import Message
from convo_service.domain.entities.notification import Notification
from convo_service.domain.entities.user import User

ALICE = "u-alice"
BOB = "u-bob"
CAROL = "u-carol"
SYSTEM = settings.SYSTEM_USER_ID


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id=ALICE, roles=[])


@pytest.fixture
def bob() -> Principal:
    return Principal(user_id=BOB, roles=[])


@pytest.fixture
def carol() -> Principal:
    return Principal(user_id=CAROL, roles=[])


@pytest.fixture
def admin_principal() -> Principal:
    return Principal(user_id=ALICE, roles=["admin"])


@pytest.fixture
def uow() -> FakeUoW:
    return FakeUoW.with_users(
        User(id=SYSTEM, username=settings.SYSTEM_USERNAME, roles=["bot"]),
        User(id=ALICE, username="alice", roles=["admin"]),
        User(id=BOB, username="bob"),
        User(id=CAROL, username="carol"),
    )


@pytest.fixture
def broker() -> FakeBroker:
    return FakeBroker()


def make_conversation(
    *participants: str,
    conversation_id: UUID | None = None,
    name: str | None = None,
    created_by: str | None = None,
    can_reply: bool = True,
    updated_at: datetime | None = None,
) -> Conversation:
    now = updated_at or datetime.now(timezone.utc)
    participants = participants or (ALICE, BOB)
    return Conversation(
        id=conversation_id or uuid.uuid4(),
        participants=tuple(participants),
        name=name,
        created_by=created_by or participants[0],
        can_reply=can_reply,
        created_at=now,
        updated_at=now,
    )


def make_message(
    conversation_id: UUID,
    *,
    sender_id: str = ALICE,
    body: str = "hello",
    created_at: datetime | None = None,
    parent_message_id: UUID | None = None,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        conversation_id=conversation_id,
        sender_id=sender_id,
        body=body,
        parent_message_id=parent_message_id,
        created_at=created_at or datetime.now(timezone.utc),
    )


def minutes_ago(minutes: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(minutes=minutes)


# --- conversations ----------------------------------------------------------


@dataclass
class FakeConversationReader:
    _store: dict[UUID, Conversation] = field(default_factory=dict)

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        return self._store.get(conversation_id)

    async def list_for_participant(
        self, user_id: str, conversation_ids: list[UUID]
    ) -> list[Conversation]:
        return [
            self._store[cid]
            for cid in conversation_ids
            if cid in self._store and self._store[cid].has_participant(user_id)
        ]

    async def find_by_participants_and_name(
        self, participants: list[str], name: str
    ) -> Conversation | None:
        for c in self._store.values():
            if set(c.participants) == set(participants) and c.name == name:
                return c
        return None


@dataclass
class FakeConversationWriter:
    _reader: FakeConversationReader
    _messages: FakeMessageReader
    fail_for_users: set[str] = field(default_factory=set)

    def _replace(self, conversation_id: UUID, **changes: Any) -> None:
        current = self._reader._store[conversation_id]
        self._reader._store[conversation_id] = dataclasses.replace(current, **changes)

    async def create(self, conversation: Conversation) -> Conversation:
        if self.fail_for_users & set(conversation.participants):
            raise RuntimeError("storage unavailable")
        self._reader._store[conversation.id] = conversation
        return conversation

    async def set_name(self, conversation_id: UUID, name: str | None, ts: datetime) -> None:
        self._replace(conversation_id, name=name, updated_at=ts)

    async def add_participants(
        self, conversation_id: UUID, user_ids: list[str], ts: datetime
    ) -> None:
        current = self._reader._store[conversation_id]
        self._replace(
            conversation_id,
            participants=current.participants + tuple(user_ids),
            updated_at=ts,
        )

    async def remove_participant(
        self, conversation_id: UUID, user_id: str, ts: datetime
    ) -> None:
        current = self._reader._store[conversation_id]
        self._replace(
            conversation_id,
            participants=tuple(p for p in current.participants if p != user_id),
            updated_at=ts,
        )

    async def touch(self, conversation_id: UUID, ts: datetime) -> None:
        if conversation_id in self._reader._store:
            self._replace(conversation_id, updated_at=ts)

    async def delete(self, conversation_id: UUID) -> None:
        self._reader._store.pop(conversation_id, None)
        self._messages._messages = [
            m for m in self._messages._messages if m.conversation_id != conversation_id
        ]

    async def delete_all(self) -> tuple[int, int]:
        counts = len(self._reader._store), len(self._messages._messages)
        self._reader._store.clear()
        self._messages._messages.clear()
        return counts


# --- messages ---------------------------------------------------------------


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    def _in(self, conversation_id: UUID) -> list[Message]:
        return [m for m in self._messages if m.conversation_id == conversation_id]

    async def list_messages(self, conversation_id: UUID) -> list[Message]:
        return self._in(conversation_id)

    async def get(self, conversation_id: UUID, message_id: UUID) -> Message | None:
        for m in self._in(conversation_id):
            if m.id == message_id:
                return m
        return None

    async def latest(self, conversation_id: UUID) -> Message | None:
        messages = self._in(conversation_id)
        return messages[-1] if messages else None

    async def count(self, conversation_id: UUID) -> int:
        return len(self._in(conversation_id))


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def append(self, message: Message) -> Message:
        self._reader._messages.append(message)
        return message

    async def delete(self, conversation_id: UUID, message_id: UUID) -> None:
        self._reader._messages = [
            m for m in self._reader._messages
            if not (m.conversation_id == conversation_id and m.id == message_id)
        ]


# --- memberships ------------------------------------------------------------


@dataclass
class FakeMembershipReader:
    _records: dict[tuple[str, UUID], Membership] = field(default_factory=dict)

    async def get(self, user_id: str, conversation_id: UUID) -> Membership | None:
        return self._records.get((user_id, conversation_id))

    async def list_for_user(self, user_id: str) -> list[Membership]:
        return [m for (uid, _), m in self._records.items() if uid == user_id]

    async def has_any_unread(self, user_id: str) -> bool:
        return any(m.unread for m in await self.list_for_user(user_id))


@dataclass
class FakeMembershipWriter:
    _reader: FakeMembershipReader
    fail_for_users: set[str] = field(default_factory=set)

    def _put(self, user_id: str, conversation_id: UUID, **changes: Any) -> None:
        if user_id in self.fail_for_users:
            raise RuntimeError("storage unavailable")
        key = (user_id, conversation_id)
        current = self._reader._records.get(key) or Membership(
            user_id=user_id, conversation_id=conversation_id, unread=False, last_read_at=None,
        )
        self._reader._records[key] = dataclasses.replace(current, **changes)

    async def upsert(
        self,
        user_id: str,
        conversation_id: UUID,
        *,
        unread: bool,
        last_read_at: datetime | None = None,
    ) -> None:
        self._put(user_id, conversation_id, unread=unread, last_read_at=last_read_at)

    async def mark_unread(self, user_id: str, conversation_id: UUID) -> None:
        self._put(user_id, conversation_id, unread=True)

    async def mark_read(self, user_id: str, conversation_id: UUID, ts: datetime) -> None:
        self._put(user_id, conversation_id, unread=False, last_read_at=ts)

    async def drop(self, user_id: str, conversation_id: UUID) -> None:
        self._reader._records.pop((user_id, conversation_id), None)

    async def drop_all_for_conversation(self, conversation_id: UUID) -> None:
        for key in [k for k in self._reader._records if k[1] == conversation_id]:
            del self._reader._records[key]

    async def clear_all(self) -> None:
        self._reader._records.clear()


# --- notifications ----------------------------------------------------------


@dataclass
class FakeNotificationReader:
    _items: list[Notification] = field(default_factory=list)  # newest first

    async def list_recent(self, user_id: str, *, limit: int = 10) -> list[Notification]:
        return [n for n in self._items if n.user_id == user_id][:limit]

    async def has_any_unread(self, user_id: str) -> bool:
        return any(n.unread for n in self._items if n.user_id == user_id)


@dataclass
class FakeNotificationWriter:
    _reader: FakeNotificationReader

    async def add(self, notification: Notification) -> Notification:
        self._reader._items.insert(0, notification)
        return notification

    async def mark_all_read(self, user_id: str) -> None:
        self._reader._items = [
            dataclasses.replace(n, unread=False) if n.user_id == user_id else n
            for n in self._reader._items
        ]

    async def mark_read(self, user_id: str, notification_id: UUID) -> Notification | None:
        for i, n in enumerate(self._reader._items):
            if n.id == notification_id and n.user_id == user_id:
                self._reader._items[i] = dataclasses.replace(n, unread=False)
                return self._reader._items[i]
        return None


# --- users ------------------------------------------------------------------


@dataclass
class FakeUserDirectory:
    _users: dict[str, User] = field(default_factory=dict)

    async def get(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def get_many(self, user_ids: list[str]) -> dict[str, User]:
        return {uid: self._users[uid] for uid in user_ids if uid in self._users}

    async def list_all(self) -> list[User]:
        return list(self._users.values())


# --- unit of work / broker --------------------------------------------------


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    conversations: FakeConversationReader = field(default_factory=FakeConversationReader)
    conversations_w: FakeConversationWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    memberships: FakeMembershipReader = field(default_factory=FakeMembershipReader)
    memberships_w: FakeMembershipWriter | None = None
    notifications: FakeNotificationReader = field(default_factory=FakeNotificationReader)
    notifications_w: FakeNotificationWriter | None = None
    users: FakeUserDirectory = field(default_factory=FakeUserDirectory)
    commits: int = 0
    rollbacks: int = 0

    def __post_init__(self) -> None:
        if self.conversations_w is None:
            self.conversations_w = FakeConversationWriter(self.conversations, self.messages)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)
        if self.memberships_w is None:
            self.memberships_w = FakeMembershipWriter(self.memberships)
        if self.notifications_w is None:
            self.notifications_w = FakeNotificationWriter(self.notifications)

    @classmethod
    def with_users(cls, *users: User) -> FakeUoW:
        uow = cls()
        uow.users._users = {u.id: u for u in users}
        return uow

    def add_conversation(self, conversation: Conversation, *messages: Message) -> Conversation:
        self.conversations._store[conversation.id] = conversation
        self.messages._messages.extend(messages)
        return conversation

    def set_membership(self, user_id: str, conversation_id: UUID, *, unread: bool) -> None:
        self.memberships._records[(user_id, conversation_id)] = Membership(
            user_id=user_id, conversation_id=conversation_id, unread=unread, last_read_at=None,
        )

    def membership(self, user_id: str, conversation_id: UUID) -> Membership | None:
        return self.memberships._records.get((user_id, conversation_id))

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


@dataclass
class FakeBroker:
    """Records every publish instead of delivering it."""
    published: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)
    connections: dict[Any, str] = field(default_factory=dict)

    def register(self, user_id: str, connection: Any) -> None:
        self.connections[connection] = user_id

    def unregister(self, connection: Any) -> None:
        self.connections.pop(connection, None)

    async def publish(self, user_id: str, event: str, payload: dict[str, Any]) -> None:
        self.published.append((user_id, event, payload))

    def recipients(self, event: str) -> list[str]:
        return [uid for uid, ev, _ in self.published if ev == event]

    def payloads(self, event: str, user_id: str | None = None) -> list[dict[str, Any]]:
        return [
            p for uid, ev, p in self.published
            if ev == event and (user_id is None or uid == user_id)
        ]
