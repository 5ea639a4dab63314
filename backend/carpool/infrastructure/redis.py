"""Redis connection management."""

import logging
from typing import Optional

import redis.asyncio as redis

from carpool.config import get_settings

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


async def init_redis():
    global redis_client
    settings = get_settings()
    redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    logger.info("Redis client configured for %s", settings.redis_url)


async def close_redis():
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None


def get_redis() -> redis.Redis:
    if redis_client is None:
        raise RuntimeError("Redis not initialized")
    return redis_client
