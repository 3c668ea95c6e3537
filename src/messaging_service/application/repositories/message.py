from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from messaging_service.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_for_conversation(
        self, conversation_key: str, user_a: str, user_b: str,
    ) -> list[Message]:
        """Messages between the two users in either direction, ascending by (created_at, id)."""
        ...

    async def latest_created_at(self, conversation_key: str) -> datetime | None: ...

    async def count_unread(self, receiver_id: str) -> int: ...


class MessageWriter(Protocol):
    async def lock_conversation(self, conversation_key: str) -> None:
        """Serialize writers on one conversation until the transaction ends."""
        ...

    async def add(self, message: Message) -> Message: ...

    async def save_state(self, message: Message) -> None:
        """Persist read/delete state of an existing message."""
        ...
