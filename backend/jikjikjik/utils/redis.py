"""Shared Redis connection used by the rate limiter."""

import logging
from typing import Optional

import redis.asyncio as redis

from jikjikjik.config import settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Lazily open the pooled client; connecting happens on first command."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=20,
            socket_connect_timeout=1,
        )
    return _redis_client


async def close_redis():
    """Release the pool on shutdown; safe to call when never opened."""
    global _redis_client
    if _redis_client is not None:
        client, _redis_client = _redis_client, None
        await client.aclose()
        logger.debug("Redis connection closed")
