from __future__ import annotations

from messaging_service.domain.entities.notification import Notification
from messaging_service.infrastructure.db.models.notification import NotificationModel


def model_to_entity(model: NotificationModel) -> Notification:
    return Notification(
        id=model.id,
        user_id=model.user_id,
        type=model.type,
        payload=model.payload or {},
        delivered=model.delivered,
        created_at=model.created_at,
        delivered_at=model.delivered_at,
    )


def entity_to_model(entity: Notification) -> NotificationModel:
    return NotificationModel(
        id=entity.id,
        user_id=entity.user_id,
        type=entity.type,
        payload=entity.payload,
        delivered=entity.delivered,
        created_at=entity.created_at,
        delivered_at=entity.delivered_at,
    )
