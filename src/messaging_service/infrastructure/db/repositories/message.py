from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from messaging_service.application.exceptions import ValidationError
from messaging_service.domain.entities.message import Message
from messaging_service.infrastructure.db.mappers import message as mapper
from messaging_service.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: UUID) -> Message | None:
        model = await self._session.get(MessageModel, message_id)
        return mapper.model_to_entity(model) if model else None

    async def list_for_conversation(
        self, conversation_key: str, user_a: str, user_b: str,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(
                MessageModel.conversation_key == conversation_key,
                or_(
                    and_(MessageModel.sender_id == user_a, MessageModel.receiver_id == user_b),
                    and_(MessageModel.sender_id == user_b, MessageModel.receiver_id == user_a),
                ),
            )
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def latest_created_at(self, conversation_key: str) -> datetime | None:
        stmt = select(func.max(MessageModel.created_at)).where(
            MessageModel.conversation_key == conversation_key
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_unread(self, receiver_id: str) -> int:
        stmt = select(func.count(MessageModel.id)).where(
            MessageModel.receiver_id == receiver_id,
            MessageModel.is_read.is_(False),
            MessageModel.is_deleted.is_(False),
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def lock_conversation(self, conversation_key: str) -> None:
        # Released automatically at commit/rollback.
        await self._session.execute(
            select(func.pg_advisory_xact_lock(func.hashtext(conversation_key)))
        )

    async def add(self, message: Message) -> Message:
        if not message.has_valid_key():
            raise ValidationError("Conversation key does not match participants")
        model = mapper.entity_to_model(message)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def save_state(self, message: Message) -> None:
        if not message.has_valid_key():
            raise ValidationError("Conversation key does not match participants")
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message.id)
            .values(
                is_read=message.is_read,
                read_at=message.read_at,
                is_deleted=message.is_deleted,
                deleted_by=message.deleted_by,
                deleted_at=message.deleted_at,
            )
        )
        await self._session.execute(stmt)
