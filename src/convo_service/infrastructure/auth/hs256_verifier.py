from __future__ import annotations

import jwt

from convo_service.application.dto.principal import Principal


def principal_from_claims(payload: dict) -> Principal:
    roles = payload.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    return Principal(user_id=str(payload["sub"]), roles=list(roles))


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            options={"require": ["sub"]},
        )
        return principal_from_claims(payload)
