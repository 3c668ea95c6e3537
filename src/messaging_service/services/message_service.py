from __future__ import annotations

import uuid

from messaging_service.application.dto.delivery import SentMessage
from messaging_service.application.dto.principal import Principal
from messaging_service.domain.entities.message import Message
from messaging_service.services.conversation_store import ConversationStore
from messaging_service.services.delivery_router import DeliveryRouter


async def send_message(
    principal: Principal,
    receiver_id: str,
    content: str | None,
    store: ConversationStore,
    router: DeliveryRouter,
) -> SentMessage:
    """Persist a direct message, then attempt live delivery.

    A persistence failure propagates and nothing is reported as sent. The
    delivery outcome is informational: an offline receiver yields
    ``undelivered`` and the message is picked up by the next history fetch.
    """
    message = await store.append(principal.user_id, receiver_id, content)
    outcome = await router.deliver(message)
    return SentMessage(message=message, delivery=outcome)


async def get_conversation(
    principal: Principal,
    other_user_id: str,
    store: ConversationStore,
) -> list[Message]:
    return await store.range_for(principal.user_id, other_user_id)


async def mark_message_read(
    message_id: uuid.UUID,
    store: ConversationStore,
    router: DeliveryRouter | None = None,
) -> Message:
    """Mark a message read and tell the conversation room and the sender."""
    message = await store.mark_read(message_id)
    if router is not None:
        await router.push_to_room(
            message.conversation_key,
            "message_read",
            {"id": str(message.id), "read_at": message.read_at.isoformat() if message.read_at else None},
            also_users=[message.sender_id],
        )
    return message


async def delete_message(
    principal: Principal,
    message_id: uuid.UUID,
    store: ConversationStore,
    router: DeliveryRouter | None = None,
) -> Message:
    """Soft-delete a message and tell the conversation room and the other participant."""
    message = await store.soft_delete(message_id, principal.user_id)
    if router is not None:
        other = message.receiver_id if principal.user_id == message.sender_id else message.sender_id
        await router.push_to_room(
            message.conversation_key,
            "message_deleted",
            {"id": str(message.id), "deleted_by": message.deleted_by},
            also_users=[other],
        )
    return message


async def unread_count(principal: Principal, store: ConversationStore) -> int:
    return await store.unread_count(principal.user_id)
