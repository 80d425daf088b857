"""
Redis connection plus the two key patterns the service relies on:
expiring flags (revoked tokens) and windowed counters (rate limits)
"""
from redis.asyncio import Redis
from typing import Optional
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

# Set by init_cache; None means Redis is unavailable
redis_client: Optional[Redis] = None


async def get_redis() -> Redis:
    if redis_client is None:
        raise RuntimeError("Redis client not initialized")
    return redis_client


async def init_cache() -> None:
    global redis_client
    redis_client = Redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True
    )
    await redis_client.ping()
    logger.info("Redis cache initialized")


async def close_cache() -> None:
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
        logger.info("Redis cache closed")


async def set_flag(key: str, ttl: int) -> None:
    """
    Mark key as present for ttl seconds
    """
    client = await get_redis()
    await client.setex(key, ttl, "1")


async def has_flag(key: str) -> bool:
    client = await get_redis()
    return await client.get(key) is not None


async def incr_window(key: str, ttl: int) -> int:
    """
    Increment a counter key and (re)arm its expiry in one round trip

    Args:
        key: Counter key
        ttl: Expiry in seconds

    Returns:
        Counter value after the increment
    """
    client = await get_redis()
    pipe = client.pipeline()
    pipe.incr(key)
    pipe.expire(key, ttl)
    results = await pipe.execute()
    return int(results[0])
