"""
Caching Service.

JSON values in Redis with a TTL, used for read-only dashboard views.
"""

import json
import logging
from typing import Any, Optional

from redis.exceptions import RedisError

from tracking_backend.app.core import redis_client as redis_client_module

logger = logging.getLogger("tracking.cache")

KEY_PREFIX = "tracking:cache:"


class CacheService:
    """
    A cache miss and an unreachable Redis look the same to callers: the
    value is recomputed.
    """

    @staticmethod
    async def get(key: str) -> Optional[Any]:
        try:
            raw = await redis_client_module.redis_client.get(f"{KEY_PREFIX}{key}")
        except RedisError as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None

        if raw is None:
            return None
        return json.loads(raw)

    @staticmethod
    async def set(key: str, data: Any, ttl_seconds: int = 300) -> bool:
        try:
            await redis_client_module.redis_client.set(f"{KEY_PREFIX}{key}", json.dumps(data), ex=ttl_seconds)
        except RedisError as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)
            return False
        return True

    @staticmethod
    async def invalidate(key: str) -> None:
        try:
            await redis_client_module.redis_client.delete(f"{KEY_PREFIX}{key}")
        except RedisError as exc:
            logger.warning("Cache invalidation failed for %s: %s", key, exc)
