from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from messaging_service.domain.entities.notification import Notification


class NotificationReader(Protocol):
    async def list_for_user(
        self, user_id: str, *, pending_only: bool = False, limit: int = 50,
    ) -> list[Notification]: ...


class NotificationWriter(Protocol):
    async def add_many(self, notifications: list[Notification]) -> None: ...

    async def mark_delivered(
        self, ids: list[UUID], at: datetime, *, user_id: str | None = None,
    ) -> int:
        """Flag notifications as delivered. Returns the number of rows changed."""
        ...
