from __future__ import annotations

from typing import Protocol

from convo_service.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from convo_service.application.repositories.membership import (
    MembershipReader,
    MembershipWriter,
)
from convo_service.application.repositories.message import MessageReader, MessageWriter
from convo_service.application.repositories.notification import (
    NotificationReader,
    NotificationWriter,
)
from convo_service.application.repositories.user import UserDirectory


class UnitOfWork(Protocol):
    """Repositories sharing one storage session.

    Services commit after every logical write step; there is no transaction
    spanning a whole operation.
    """

    conversations: ConversationReader
    conversations_w: ConversationWriter
    messages: MessageReader
    messages_w: MessageWriter
    memberships: MembershipReader
    memberships_w: MembershipWriter
    notifications: NotificationReader
    notifications_w: NotificationWriter
    users: UserDirectory

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...
