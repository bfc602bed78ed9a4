"""
Redis caching service for the car listing.

CACHING STRATEGY
================

What we cache:
  - The full car listing response (JSON-serialized) under "cars:list"

Why:
  - The catalog is read on every visit to the cars page
  - It only changes when an admin edits the catalog

Invalidation strategy:
  - Every car mutation deletes the key
  - TTL-based expiry as safety net (CAR_LIST_CACHE_TTL)

Why NOT cache availability:
  - Availability depends on bookings, which change constantly
  - A stale "available" answer would only be corrected by a 409 at creation
"""

import json
from typing import Optional

from redis.exceptions import RedisError

from car_rental.core.config import get_settings
from car_rental.core.logging import get_logger
from car_rental.core.metrics import record_cache_operation
from car_rental.infrastructure.redis_client import get_redis

logger = get_logger(__name__)
settings = get_settings()

CAR_LIST_KEY = "cars:list"


async def get_cached_cars() -> Optional[dict]:
    """Retrieve cached car list response."""
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(CAR_LIST_KEY)
    except RedisError as e:
        logger.error("cache_get_error", key=CAR_LIST_KEY, error=str(e))
        return None

    record_cache_operation("get", hit=bool(data))
    if data:
        logger.debug("cache_hit", key=CAR_LIST_KEY)
        return json.loads(data)
    logger.debug("cache_miss", key=CAR_LIST_KEY)
    return None


async def set_cached_cars(data: dict) -> None:
    """Cache car list response with TTL."""
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(CAR_LIST_KEY, settings.CAR_LIST_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=CAR_LIST_KEY, ttl=settings.CAR_LIST_CACHE_TTL)
    except RedisError as e:
        logger.error("cache_set_error", key=CAR_LIST_KEY, error=str(e))


async def invalidate_car_cache() -> None:
    client = await get_redis()
    if not client:
        return

    try:
        deleted = await client.delete(CAR_LIST_KEY)
        logger.info("cache_invalidated", keys_deleted=deleted)
    except RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
