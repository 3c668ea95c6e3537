from __future__ import annotations

from typing import Protocol

from messaging_service.application.dto.principal import Principal


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Principal: ...


class UserStatusChecker(Protocol):
    async def is_user_active(self, user_id: str) -> bool:
        """False for banned or suspended users."""
        ...
