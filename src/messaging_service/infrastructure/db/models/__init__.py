"""Import all models so Alembic can discover them via Base.metadata."""
from messaging_service.infrastructure.db.models.message import MessageModel
from messaging_service.infrastructure.db.models.notification import NotificationModel

__all__ = [
    "MessageModel",
    "NotificationModel",
]
