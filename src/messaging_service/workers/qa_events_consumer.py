"""Turn upstream Q&A platform events into notifications and ban updates.

The consumer runs inside the web process lifespan because notifications are
pushed through that process's connection registry.
"""
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any

import redis.asyncio as aioredis

from messaging_service.config import settings
from messaging_service.domain.value_objects.enums import NotificationType
from messaging_service.infrastructure.auth.redis_user_status import RedisUserStatusChecker
from messaging_service.infrastructure.bus.redis_streams import (
    MalformedEventError,
    RedisStreamConsumer,
)
from messaging_service.infrastructure.ws.protocol import CLOSE_FORBIDDEN
from messaging_service.infrastructure.ws.registry import ConnectionRegistry
from messaging_service.services.notification_fanout import NotificationFanout

logger = logging.getLogger(__name__)


def _require(fields: dict[str, Any], name: str) -> str:
    value = fields.get(name)
    if not value:
        raise MalformedEventError(f"missing field {name!r}")
    return str(value)


def _id_list(raw: Any) -> list[str]:
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedEventError("subscriber_ids is not valid JSON") from exc
    if not isinstance(raw, list):
        raise MalformedEventError("subscriber_ids must be a list")
    return [str(v) for v in raw]


class QaEventHandler:
    def __init__(
        self,
        fanout: NotificationFanout,
        registry: ConnectionRegistry,
        user_status: RedisUserStatusChecker,
    ) -> None:
        self._fanout = fanout
        self._registry = registry
        self._user_status = user_status

    async def __call__(self, event_type: str, fields: dict[str, Any]) -> None:
        if event_type == "question.created":
            await self._on_question_created(fields)
        elif event_type == "answer.created":
            await self._on_answer_created(fields)
        elif event_type == "answer.accepted":
            await self._on_answer_accepted(fields)
        elif event_type == "user.banned":
            await self._on_user_banned(fields)
        elif event_type == "user.unbanned":
            await self._user_status.unban(_require(fields, "user_id"))
        else:
            logger.debug("Ignoring unknown event: %s", event_type)

    async def _on_question_created(self, fields: dict[str, Any]) -> None:
        author_id = _require(fields, "author_id")
        targets = [u for u in _id_list(fields.get("subscriber_ids")) if u != author_id]
        payload = {
            "question_id": _require(fields, "question_id"),
            "title": fields.get("title", ""),
            "subject": fields.get("subject", ""),
            "author_id": author_id,
        }
        await self._fanout.notify_many(targets, NotificationType.NEW_QUESTION, payload)

    async def _on_answer_created(self, fields: dict[str, Any]) -> None:
        question_author = _require(fields, "question_author_id")
        answer_author = _require(fields, "author_id")
        if question_author == answer_author:
            return
        payload = {
            "question_id": _require(fields, "question_id"),
            "answer_id": _require(fields, "answer_id"),
            "author_id": answer_author,
        }
        await self._fanout.notify_many([question_author], NotificationType.NEW_ANSWER, payload)

    async def _on_answer_accepted(self, fields: dict[str, Any]) -> None:
        payload = {
            "question_id": _require(fields, "question_id"),
            "answer_id": _require(fields, "answer_id"),
        }
        await self._fanout.notify_many(
            [_require(fields, "answer_author_id")], NotificationType.ANSWER_ACCEPTED, payload,
        )

    async def _on_user_banned(self, fields: dict[str, Any]) -> None:
        user_id = _require(fields, "user_id")
        await self._user_status.ban(user_id)
        closed = 0
        for conn in self._registry.connections_for(user_id):
            if self._registry.unregister(conn.connection_id) is None:
                continue
            try:
                await asyncio.wait_for(
                    conn.handle.close(code=CLOSE_FORBIDDEN, reason="Forbidden"),
                    settings.DELIVERY_TIMEOUT_SECONDS,
                )
            except Exception:
                logger.debug("Close of %s failed", conn.connection_id, exc_info=True)
            closed += 1
        logger.info("User %s banned, closed %d live connections", user_id, closed)


def build_consumer(redis: aioredis.Redis, handler: QaEventHandler) -> RedisStreamConsumer:
    return RedisStreamConsumer(
        redis=redis,
        stream=settings.QA_EVENTS_STREAM,
        group=settings.QA_EVENTS_GROUP,
        consumer=f"consumer-{uuid.uuid4().hex[:8]}",
        callback=handler,
    )
