from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from messaging_service.domain.entities.notification import Notification
from messaging_service.infrastructure.db.mappers import notification as mapper
from messaging_service.infrastructure.db.models.notification import NotificationModel


class NotificationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_user(
        self,
        user_id: str,
        *,
        pending_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        stmt = (
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id)
            .limit(limit)
        )
        if pending_only:
            stmt = stmt.where(NotificationModel.delivered.is_(False))
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class NotificationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_many(self, notifications: list[Notification]) -> None:
        self._session.add_all([mapper.entity_to_model(n) for n in notifications])
        await self._session.flush()

    async def mark_delivered(
        self,
        ids: list[UUID],
        at: datetime,
        *,
        user_id: str | None = None,
    ) -> int:
        if not ids:
            return 0
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.id.in_(ids),
                NotificationModel.delivered.is_(False),
            )
            .values(delivered=True, delivered_at=at)
        )
        if user_id is not None:
            stmt = stmt.where(NotificationModel.user_id == user_id)
        result = await self._session.execute(stmt)
        return result.rowcount or 0
