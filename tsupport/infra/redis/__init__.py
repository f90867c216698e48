"""Shared ``redis.asyncio`` client.

Publishers (change feed, typing broadcasts) use the client directly; every
subscription opens its own pub/sub connection from it.
"""

import logging
from collections.abc import AsyncGenerator

import redis.asyncio as redis

from tsupport.configs import configs

logger = logging.getLogger(__name__)

_redis_client: redis.Redis | None = None


async def get_redis_client() -> redis.Redis:
    """Return the process-wide client, connecting lazily on first use."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(configs.Redis.REDIS_URL, decode_responses=True)
        logger.info("Redis client ready for %s:%s db=%s", configs.Redis.HOST, configs.Redis.PORT, configs.Redis.DB)
    return _redis_client


async def get_redis_dependency() -> AsyncGenerator[redis.Redis, None]:
    yield await get_redis_client()


async def close_redis_client() -> None:
    global _redis_client
    if _redis_client is None:
        return
    client, _redis_client = _redis_client, None
    await client.aclose()
    logger.info("Redis client closed")


async def health_check(client: redis.Redis) -> bool:
    """Whether *client* answers PING. Failures are logged, never raised."""
    try:
        return bool(await client.ping())
    except Exception as e:
        logger.error("Redis health check failed: %s", e)
        return False


__all__ = [
    "close_redis_client",
    "get_redis_client",
    "get_redis_dependency",
    "health_check",
]
