"""
Redis caching service for month booking listings.

CACHING STRATEGY
================

What we cache:
  - Month listing responses (bookings with event details, JSON-serialized)
  - Cache key pattern: "bookings:month:{year}-{month}:room={room_id|all}"

Why:
  - The calendar view reloads the whole month on every navigation
  - A month of bookings is one three-table join; Redis serves it in ~1ms

Invalidation strategy:
  - Any mutation (create, update, delete of an event or booking) deletes
    every month listing key
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

  An event update can move bookings between rooms, and a date update can
  move a booking between months, so per-key invalidation would need the
  before and after state of every affected booking. Prefix invalidation
  (SCAN "bookings:month:*") avoids that. The keyspace is small: at most one
  key per (month, room filter) that has actually been viewed.

Why NOT cache availability:
  - Availability answers gate writes; a stale "available" is a double
    booking waiting to happen

Redis failures never fail a request: reads degrade to a miss, writes and
invalidations are logged and skipped.
"""

import json
from typing import Optional

import redis.asyncio as redis
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

MONTH_KEY_PREFIX = "bookings:month:"

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


def make_month_key(year: int, month: int, room_id: Optional[str] = None) -> str:
    return f"{MONTH_KEY_PREFIX}{year:04d}-{month:02d}:room={room_id or 'all'}"


async def get_cached_month(year: int, month: int, room_id: Optional[str] = None) -> Optional[dict]:
    """Retrieve a cached month listing response."""
    client = await get_redis()
    if not client:
        return None

    key = make_month_key(year, month, room_id)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_month(year: int, month: int, room_id: Optional[str], data: dict) -> None:
    """Cache a month listing response with TTL."""
    client = await get_redis()
    if not client:
        return

    key = make_month_key(year, month, room_id)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", hit=True)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_booking_cache() -> None:
    """
    Invalidate all cached month listings.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{MONTH_KEY_PREFIX}*", count=100):
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
        keyspace = await client.info("keyspace")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
            "keys": keyspace,
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
