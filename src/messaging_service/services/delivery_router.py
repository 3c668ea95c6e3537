"""Push persisted messages and events to a user's live connections."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from messaging_service.application.dto.delivery import UNDELIVERED, DeliveryOutcome
from messaging_service.domain.entities.message import Message
from messaging_service.infrastructure.ws import protocol
from messaging_service.infrastructure.ws.registry import Connection, ConnectionRegistry

logger = logging.getLogger(__name__)


class DeliveryRouter:
    """Best-effort, time-bounded push. Persistence is the source of truth.

    All writes for one call run concurrently and each is capped at
    ``timeout`` seconds. A connection whose write fails or times out is
    dropped from the registry and closed in the background; the remaining
    connections are unaffected.
    """

    def __init__(self, registry: ConnectionRegistry, *, timeout: float = 2.0) -> None:
        self._registry = registry
        self._timeout = timeout
        self._closing: set[asyncio.Task[None]] = set()

    async def deliver(self, message: Message) -> DeliveryOutcome:
        """Push ``new_message`` to the receiver and echo ``message_sent`` to the sender."""
        data = protocol.message_data(message)
        outcome, _echo = await asyncio.gather(
            self.push(message.receiver_id, "new_message", data),
            self.push(message.sender_id, "message_sent", data),
        )
        if outcome.delivered == 0:
            logger.info("Message %s stored but receiver %s not reached", message.id, message.receiver_id)
        return outcome

    async def push(self, user_id: str, event_type: str, data: dict[str, Any]) -> DeliveryOutcome:
        return await self._push_all(self._registry.connections_for(user_id), event_type, data)

    async def push_to_room(
        self,
        room_key: str,
        event_type: str,
        data: dict[str, Any],
        *,
        also_users: Iterable[str] = (),
    ) -> DeliveryOutcome:
        """Push to every connection that joined ``room_key``.

        Connections of ``also_users`` are added even if they never joined the
        room; a connection found both ways gets the event once.
        """
        targets = {c.connection_id: c for c in self._registry.connections_in_room(room_key)}
        for user_id in also_users:
            for conn in self._registry.connections_for(user_id):
                targets.setdefault(conn.connection_id, conn)
        return await self._push_all(list(targets.values()), event_type, data)

    async def _push_all(
        self, targets: list[Connection], event_type: str, data: dict[str, Any],
    ) -> DeliveryOutcome:
        if not targets:
            return UNDELIVERED

        raw = protocol.encode(event_type, data)
        results = await asyncio.gather(*(self._push_one(conn, raw) for conn in targets))
        delivered = sum(results)
        return DeliveryOutcome.from_counts(delivered, len(results) - delivered)

    async def _push_one(self, conn: Connection, raw: str) -> bool:
        if not conn.is_open:
            logger.info("Abandoned push to closed connection %s", conn.connection_id)
            return False
        try:
            await asyncio.wait_for(conn.handle.send_text(raw), self._timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(
                "Push to %s (%s) timed out after %.1fs, abandoning",
                conn.connection_id, conn.user_id, self._timeout,
            )
        except Exception:
            logger.warning(
                "Push to %s (%s) failed, abandoning",
                conn.connection_id, conn.user_id, exc_info=True,
            )
        self._abandon(conn)
        return False

    def _abandon(self, conn: Connection) -> None:
        if self._registry.unregister(conn.connection_id) is None:
            return
        task = asyncio.create_task(self._close_quietly(conn), name=f"ws-close-{conn.connection_id}")
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close_quietly(self, conn: Connection) -> None:
        try:
            await asyncio.wait_for(
                conn.handle.close(code=1011, reason="Unresponsive"), self._timeout,
            )
        except Exception:
            logger.debug("Close of %s failed", conn.connection_id, exc_info=True)

    async def aclose(self) -> None:
        for task in list(self._closing):
            task.cancel()
        await asyncio.gather(*self._closing, return_exceptions=True)
