"""
Redis connection.

Redis only holds the session revocation flags written when a user is
deactivated or deleted. An unreachable Redis is reported by the health
check; revocation checks then fall back to the database.
"""

import logging
from typing import Optional
import redis.asyncio as redis
from redis.exceptions import RedisError
from transport_backend.app.core.config import settings

logger = logging.getLogger(__name__)

_client: Optional[redis.Redis] = None


def redis_connection() -> redis.Redis:
    global _client
    if _client is None:
        _client = redis.from_url(settings.redis_url, decode_responses=settings.redis_decode_responses)
    return _client


async def get_redis() -> redis.Redis:
    """FastAPI dependency; overridden in tests."""
    return redis_connection()


async def ping_redis(client=None) -> bool:
    try:
        return bool(await (client or redis_connection()).ping())
    except (RedisError, OSError) as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
