from __future__ import annotations

from messaging_service.application.dto.principal import Principal
from messaging_service.application.exceptions import ForbiddenError, NotFoundError
from messaging_service.domain.entities.message import Message
from messaging_service.domain.value_objects.conversation_key import key_includes


def assert_message_participant(user_id: str, message: Message | None) -> Message:
    """Raise if the message doesn't exist or the user is neither sender nor receiver."""
    if message is None:
        raise NotFoundError("Message not found")
    if not message.involves(user_id):
        raise ForbiddenError("Not authorized to delete this message")
    return message


def assert_room_member(principal: Principal, room_key: str) -> None:
    if not key_includes(room_key, principal.user_id):
        raise ForbiddenError("Not a participant of this conversation")


def assert_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise ForbiddenError("Admin access required")
