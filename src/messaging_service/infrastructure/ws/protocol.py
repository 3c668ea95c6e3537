"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from messaging_service.domain.entities.message import Message
from messaging_service.domain.entities.notification import Notification

# Close codes sent after accept.
CLOSE_UNAUTHENTICATED = 4001
CLOSE_FORBIDDEN = 4003
CLOSE_TRY_AGAIN_LATER = 1013


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # join_chat | leave_chat | send_message | mark_read | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # connected | joined | left | new_message | message_sent | new_notification | message_read | message_deleted | error | pong
    data: dict[str, Any] = {}


def encode(event_type: str, data: dict[str, Any] | None = None) -> str:
    return WsOutbound(type=event_type, data=data or {}).model_dump_json()


def error_event(code: str, detail: str = "") -> str:
    return encode("error", {"code": code, "detail": detail})


def message_data(message: Message) -> dict[str, Any]:
    return {
        "id": str(message.id),
        "sender_id": message.sender_id,
        "receiver_id": message.receiver_id,
        "conversation_key": message.conversation_key,
        "content": message.content,
        "created_at": message.created_at.isoformat(),
        "is_read": message.is_read,
        "read_at": message.read_at.isoformat() if message.read_at else None,
        "is_deleted": message.is_deleted,
    }


def notification_data(notification: Notification) -> dict[str, Any]:
    return {
        "id": str(notification.id),
        "type": notification.type,
        "payload": notification.payload,
        "created_at": notification.created_at.isoformat(),
    }
