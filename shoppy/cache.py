# shoppy/cache.py
import json
import logging
from typing import Optional, Dict, Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .config import REDIS_URL, CART_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

CART_COUNT_PREFIX = "cart_count:"
CART_PREFIX = "cart:"


class CartCache:
    """Short-lived cart aggregate cache. Redis failures degrade to a miss."""

    def __init__(self, redis: Redis, ttl_seconds: int = CART_CACHE_TTL_SECONDS):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    async def get_count(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            raw = await self.redis.get(CART_COUNT_PREFIX + user_id)
        except RedisError as e:
            logger.warning("[CACHE] read failed for %s: %s", user_id, e)
            return None
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    async def set_count(self, user_id: str, value: Dict[str, Any]) -> None:
        try:
            await self.redis.set(CART_COUNT_PREFIX + user_id, json.dumps(value), ex=self.ttl_seconds)
        except RedisError as e:
            logger.warning("[CACHE] write failed for %s: %s", user_id, e)

    async def invalidate(self, user_id: str) -> None:
        try:
            await self.redis.delete(CART_COUNT_PREFIX + user_id, CART_PREFIX + user_id)
        except RedisError as e:
            logger.warning("[CACHE] invalidate failed for %s: %s", user_id, e)


def redis_from_url(url: str = REDIS_URL) -> Redis:
    return Redis.from_url(url, decode_responses=True)
