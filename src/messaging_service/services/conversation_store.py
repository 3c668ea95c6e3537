"""Durable, per-conversation ordered message log."""
from __future__ import annotations

import logging
import uuid

from messaging_service.application.exceptions import (
    InvalidContentError,
    NotFoundError,
    ValidationError,
)
from messaging_service.application.policies.permissions import assert_message_participant
from messaging_service.application.ports.clock import Clock, SystemClock, strictly_after
from messaging_service.application.uow import UoWFactory
from messaging_service.domain.entities.message import Message
from messaging_service.domain.value_objects.conversation_key import (
    SEPARATOR,
    conversation_key,
    is_valid_user_id,
)
from messaging_service.services._keyed_lock import KeyedLock

logger = logging.getLogger(__name__)


class ConversationStore:
    """Appends and queries messages keyed by the unordered pair of participants.

    Writers on one conversation key are serialized (in-process keyed lock plus
    a transaction-scoped database lock); different keys never wait on each
    other. Each call runs in its own unit of work and commits before
    returning, so callers can deliver after the lock is released.
    """

    def __init__(
        self,
        uow_factory: UoWFactory,
        *,
        clock: Clock | None = None,
        max_length: int = 5000,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock or SystemClock()
        self._max_length = max_length
        self._locks = KeyedLock()

    async def append(self, sender_id: str, receiver_id: str, content: str | None) -> Message:
        body = (content or "").strip()
        if not body:
            raise InvalidContentError("Message content must not be empty")
        if len(body) > self._max_length:
            raise InvalidContentError(
                f"Message content exceeds {self._max_length} characters"
            )
        if not receiver_id:
            raise InvalidContentError("Receiver is required")
        if sender_id == receiver_id:
            raise InvalidContentError("Cannot send a message to yourself")
        _require_user_ids(sender_id, receiver_id)

        key = conversation_key(sender_id, receiver_id)
        async with self._locks.hold(key):
            async with self._uow_factory() as uow:
                await uow.messages_w.lock_conversation(key)
                last = await uow.messages.latest_created_at(key)
                message = Message(
                    id=uuid.uuid4(),
                    sender_id=sender_id,
                    receiver_id=receiver_id,
                    conversation_key=key,
                    content=body,
                    created_at=strictly_after(self._clock.now(), last),
                )
                message = await uow.messages_w.add(message)
                await uow.commit()
        logger.debug("Stored message %s in %s", message.id, key)
        return message

    async def range_for(self, user_a: str, user_b: str) -> list[Message]:
        _require_user_ids(user_a, user_b)
        key = conversation_key(user_a, user_b)
        async with self._locks.hold(key):
            async with self._uow_factory() as uow:
                return await uow.messages.list_for_conversation(key, user_a, user_b)

    async def mark_read(self, message_id: uuid.UUID) -> Message:
        async with self._uow_factory() as uow:
            message = await uow.messages.get_by_id(message_id)
            if message is None:
                raise NotFoundError("Message not found")
            message = message.marked_read(self._clock.now())
            await uow.messages_w.save_state(message)
            await uow.commit()
        return message

    async def soft_delete(self, message_id: uuid.UUID, requesting_user: str) -> Message:
        async with self._uow_factory() as uow:
            message = assert_message_participant(
                requesting_user, await uow.messages.get_by_id(message_id),
            )
            message = message.soft_deleted(requesting_user, self._clock.now())
            await uow.messages_w.save_state(message)
            await uow.commit()
        logger.info("Message %s deleted by %s", message.id, requesting_user)
        return message

    async def unread_count(self, user_id: str) -> int:
        async with self._uow_factory() as uow:
            return await uow.messages.count_unread(user_id)


def _require_user_ids(*user_ids: str) -> None:
    for user_id in user_ids:
        if not is_valid_user_id(user_id):
            raise ValidationError(f"Invalid user id {user_id!r}: must not contain {SEPARATOR!r}")
