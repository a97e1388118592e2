"""Seed development data: creates the schema, a few users and one conversation."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone

from convo_service.config import settings
from convo_service.domain.entities.conversation import Conversation
from convo_service.domain.entities.message import Message
from convo_service.infrastructure.db.models.user import UserModel
from convo_service.infrastructure.db.session import AsyncSessionLocal, create_schema
from convo_service.infrastructure.db.uow import SqlAlchemyUoW

logger = logging.getLogger(__name__)

USERS = [
    (settings.SYSTEM_USER_ID, settings.SYSTEM_USERNAME, ["bot"]),
    ("u-alice", "alice", ["admin"]),
    ("u-bob", "bob", []),
    ("u-carol", "carol", []),
]


async def seed() -> None:
    await create_schema()

    async with AsyncSessionLocal() as session:
        for user_id, username, roles in USERS:
            await session.merge(UserModel(id=user_id, username=username, roles=roles))
        await session.commit()

        uow = SqlAlchemyUoW(session)
        now = datetime.now(timezone.utc)
        conv = await uow.conversations_w.create(
            Conversation(
                id=uuid.uuid4(),
                participants=("u-alice", "u-bob"),
                name=None,
                created_by="u-alice",
                can_reply=True,
                created_at=now,
                updated_at=now,
            )
        )

        messages_data = [
            ("u-alice", "Hi Bob, did the build go out?"),
            ("u-bob", "Yes, about ten minutes ago."),
            ("u-alice", "Great, thanks!"),
        ]
        for sender_id, body in messages_data:
            await uow.messages_w.append(
                Message(
                    id=uuid.uuid4(),
                    conversation_id=conv.id,
                    sender_id=sender_id,
                    body=body,
                    parent_message_id=None,
                    created_at=datetime.now(timezone.utc),
                )
            )
        await uow.commit()

        await uow.memberships_w.upsert("u-alice", conv.id, unread=False, last_read_at=now)
        await uow.memberships_w.upsert("u-bob", conv.id, unread=True)
        await uow.commit()
        logger.info("Seeded conversation %s with %d messages", conv.id, len(messages_data))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
