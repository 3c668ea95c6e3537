from __future__ import annotations

from messaging_service.domain.entities.message import Message
from messaging_service.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        sender_id=model.sender_id,
        receiver_id=model.receiver_id,
        conversation_key=model.conversation_key,
        content=model.content,
        created_at=model.created_at,
        is_read=model.is_read,
        read_at=model.read_at,
        is_deleted=model.is_deleted,
        deleted_by=model.deleted_by,
        deleted_at=model.deleted_at,
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        sender_id=entity.sender_id,
        receiver_id=entity.receiver_id,
        conversation_key=entity.conversation_key,
        content=entity.content,
        created_at=entity.created_at,
        is_read=entity.is_read,
        read_at=entity.read_at,
        is_deleted=entity.is_deleted,
        deleted_by=entity.deleted_by,
        deleted_at=entity.deleted_at,
    )
