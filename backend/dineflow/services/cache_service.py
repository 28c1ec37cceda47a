"""
Redis caching service for the restaurant catalog.

What we cache:
  - The restaurant list response (JSON-serialized), key "restaurants:list:all"

Why:
  - Browsing restaurants is the most frequent read and the catalog changes
    rarely (admin tooling only)

What we never cache:
  - Table availability. It changes with every booking, and the booking path
    re-checks against the database anyway.

Invalidation:
  - Prefix-based: all keys start with "restaurants:list:" and are removed
    with SCAN after the catalog changes (e.g. seeding)
  - TTL as a safety net

Redis is optional: when disabled or unreachable every call degrades to a
cache miss.
"""

import json
from typing import Optional

import redis.asyncio as redis
from dineflow.core.config import get_settings
from dineflow.core.logging import get_logger
from dineflow.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

RESTAURANT_LIST_KEY = "restaurants:list:all"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


async def get_cached_restaurants() -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(RESTAURANT_LIST_KEY)
        record_cache_operation("get", hit=data is not None)
        if data:
            return json.loads(data)
    except Exception as e:
        logger.error("cache_get_error", key=RESTAURANT_LIST_KEY, error=str(e))

    return None


async def set_cached_restaurants(data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(RESTAURANT_LIST_KEY, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=RESTAURANT_LIST_KEY, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=RESTAURANT_LIST_KEY, error=str(e))


async def invalidate_restaurant_cache() -> None:
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match="restaurants:list:*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
