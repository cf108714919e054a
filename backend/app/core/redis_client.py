"""
Redis connection helpers for the live-update relay.

Only used when `live_updates_backend` is "redis"; the application context
owns the client and closes it on shutdown.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from backend.app.core.config import Settings

logger = logging.getLogger("parcel_delivery.redis")


def create_redis(settings: Settings) -> redis.Redis:
    logger.info("Connecting live-update relay to %s", settings.redis_url)
    return redis.from_url(settings.redis_url, decode_responses=settings.redis_decode_responses)


async def ping_redis(client: redis.Redis) -> bool:
    """True when the server answers PING; connection errors count as down."""
    try:
        return bool(await client.ping())
    except (RedisError, OSError):
        logger.warning("Redis did not answer PING")
        return False
