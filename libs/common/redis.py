"""Shared async Redis connection.

Usage:
    from libs.common.redis import get_redis

    redis = await get_redis()
    await redis.hgetall("cart:user:123")
"""

from contextlib import contextmanager
from typing import Iterator, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from libs.common.config import get_settings
from libs.common.errors import StorageError
from libs.common.logging import get_logger

logger = get_logger(__name__)

_client: Optional[aioredis.Redis] = None


async def get_redis() -> aioredis.Redis:
    """Return the process-wide Redis client, creating it on first use."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client


async def ping_redis() -> bool:
    """Health check. Returns False instead of raising when Redis is down."""
    try:
        redis = await get_redis()
        return bool(await redis.ping())
    except RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        return False


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Re-raise Redis failures inside the block as StorageError."""
    try:
        yield
    except RedisError as e:
        logger.error(f"Redis {operation} failed: {e}")
        raise StorageError("Storage is unavailable, please retry") from e
