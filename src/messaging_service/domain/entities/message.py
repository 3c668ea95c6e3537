from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID

from messaging_service.domain.value_objects.conversation_key import conversation_key


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    sender_id: str
    receiver_id: str
    conversation_key: str
    content: str
    created_at: datetime
    is_read: bool = False
    read_at: datetime | None = None
    is_deleted: bool = False
    deleted_by: str | None = None
    deleted_at: datetime | None = None

    def involves(self, user_id: str) -> bool:
        return user_id in (self.sender_id, self.receiver_id)

    def has_valid_key(self) -> bool:
        try:
            return self.conversation_key == conversation_key(self.sender_id, self.receiver_id)
        except ValueError:
            return False

    def marked_read(self, at: datetime) -> Message:
        # Repeated calls refresh read_at; there is no already-read guard.
        return replace(self, is_read=True, read_at=at)

    def soft_deleted(self, by: str, at: datetime) -> Message:
        """Return the deleted state. Callers check ``involves(by)`` first."""
        if not self.involves(by):
            raise ValueError(f"{by!r} is not a participant of message {self.id}")
        return replace(self, is_deleted=True, deleted_by=by, deleted_at=at)
