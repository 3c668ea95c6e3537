"""System-event notifications to one or many users."""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Iterable

from messaging_service.application.dto.delivery import DeliveryOutcome
from messaging_service.application.exceptions import ValidationError
from messaging_service.application.ports.clock import Clock, SystemClock
from messaging_service.application.uow import UoWFactory
from messaging_service.domain.entities.notification import Notification
from messaging_service.domain.value_objects.enums import DeliveryStatus, NotificationType
from messaging_service.infrastructure.ws import protocol
from messaging_service.services.delivery_router import DeliveryRouter

logger = logging.getLogger(__name__)


class NotificationFanout:
    def __init__(
        self,
        router: DeliveryRouter,
        uow_factory: UoWFactory,
        *,
        clock: Clock | None = None,
        concurrency: int = 100,
    ) -> None:
        self._router = router
        self._uow_factory = uow_factory
        self._clock = clock or SystemClock()
        self._semaphore = asyncio.Semaphore(concurrency)
        self._tasks: set[asyncio.Task[DeliveryOutcome | None]] = set()

    async def notify(
        self,
        user_id: str,
        event_type: NotificationType | str,
        payload: dict[str, Any] | None = None,
    ) -> DeliveryOutcome:
        """Persist one notification and attempt delivery before returning."""
        [notification] = await self._persist([str(user_id)], event_type, payload)
        return await self._deliver(notification)

    async def notify_many(
        self,
        user_ids: Iterable[str],
        event_type: NotificationType | str,
        payload: dict[str, Any] | None = None,
    ) -> list[Notification]:
        """Persist one notification per target and push them in the background.

        Returns as soon as the notifications are stored; each target's push
        runs in its own task so a slow or offline user never holds up the
        others or the caller.
        """
        targets = list(dict.fromkeys(str(u) for u in user_ids if u))
        if not targets:
            return []
        notifications = await self._persist(targets, event_type, payload)
        for notification in notifications:
            task = asyncio.create_task(
                self._deliver_guarded(notification),
                name=f"fanout-{notification.id}",
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        logger.info("Fan-out of %s scheduled for %d users", notifications[0].type, len(targets))
        return notifications

    async def list_for(
        self, user_id: str, *, pending_only: bool = False, limit: int = 50,
    ) -> list[Notification]:
        async with self._uow_factory() as uow:
            return await uow.notifications.list_for_user(
                user_id, pending_only=pending_only, limit=limit,
            )

    async def acknowledge(self, user_id: str, ids: list[uuid.UUID]) -> int:
        async with self._uow_factory() as uow:
            count = await uow.notifications_w.mark_delivered(
                ids, self._clock.now(), user_id=user_id,
            )
            await uow.commit()
        return count

    async def drain(self) -> None:
        """Wait for in-flight fan-out deliveries."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def _persist(
        self,
        user_ids: list[str],
        event_type: NotificationType | str,
        payload: dict[str, Any] | None,
    ) -> list[Notification]:
        try:
            kind = NotificationType(event_type)
        except ValueError as exc:
            raise ValidationError(f"Unknown notification type: {event_type}") from exc
        now = self._clock.now()
        notifications = [
            Notification(
                id=uuid.uuid4(),
                user_id=user_id,
                type=kind.value,
                payload=dict(payload or {}),
                created_at=now,
            )
            for user_id in user_ids
        ]
        async with self._uow_factory() as uow:
            await uow.notifications_w.add_many(notifications)
            await uow.commit()
        return notifications

    async def _deliver(self, notification: Notification) -> DeliveryOutcome:
        async with self._semaphore:
            outcome = await self._router.push(
                notification.user_id,
                "new_notification",
                protocol.notification_data(notification),
            )
        if outcome.status == DeliveryStatus.DELIVERED:
            try:
                async with self._uow_factory() as uow:
                    await uow.notifications_w.mark_delivered([notification.id], self._clock.now())
                    await uow.commit()
            except Exception:
                logger.exception("Could not flag notification %s as delivered", notification.id)
        return outcome

    async def _deliver_guarded(self, notification: Notification) -> DeliveryOutcome | None:
        try:
            return await self._deliver(notification)
        except Exception:
            logger.exception("Fan-out delivery to %s failed", notification.user_id)
            return None
