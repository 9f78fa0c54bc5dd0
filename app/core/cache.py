"""
Redis connection shared by the notification cache and the realtime channel.
"""

import logging
from typing import Optional

import redis

from app.core.config import settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """Return the process wide Redis client, creating it on first use"""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        logger.info("Redis client created")
    return _redis_client


def set_redis(client: Optional[redis.Redis]) -> None:
    """Swap the shared client, e.g. for an in-memory server"""
    global _redis_client
    _redis_client = client


def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None
        logger.info("Redis connection closed")
