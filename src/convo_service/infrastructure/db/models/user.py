from __future__ import annotations

from sqlalchemy import String, text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from convo_service.infrastructure.db.base import Base


class UserModel(Base):
    """Mirror of the external user directory. Read only for this service."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    roles: Mapped[list[str]] = mapped_column(
        ARRAY(String(20)), nullable=False, default=list, server_default=text("'{}'"),
    )
    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)
