from __future__ import annotations

from convo_service.domain.entities.user import User
from convo_service.infrastructure.db.models.user import UserModel


def model_to_entity(model: UserModel) -> User:
    return User(
        id=model.id,
        username=model.username,
        roles=list(model.roles or []),
        avatar=model.avatar,
    )
