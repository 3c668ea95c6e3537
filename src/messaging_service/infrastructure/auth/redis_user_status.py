from __future__ import annotations

import logging

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class RedisUserStatusChecker:
    """Banned users live in a Redis set maintained from upstream user events."""

    def __init__(self, redis: aioredis.Redis, banned_key: str) -> None:
        self._redis = redis
        self._banned_key = banned_key

    async def is_user_active(self, user_id: str) -> bool:
        return not await self._redis.sismember(self._banned_key, user_id)

    async def ban(self, user_id: str) -> None:
        await self._redis.sadd(self._banned_key, user_id)
        logger.info("User %s added to ban list", user_id)

    async def unban(self, user_id: str) -> None:
        await self._redis.srem(self._banned_key, user_id)
        logger.info("User %s removed from ban list", user_id)
