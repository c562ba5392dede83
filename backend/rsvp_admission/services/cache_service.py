"""
Redis caching service for priority tier lookups.

CACHING STRATEGY
================

What we cache:
  - The membership tier of a subject, keyed "tier:{subject_id}"

Why:
  - Tier is read every time someone joins a waitlist
  - Tiers change rarely (membership upgrades), and a slightly stale tier
    only moves the insertion point; it can never break capacity or
    waitlist density

Invalidation strategy:
  - TTL-based expiry only (5 minutes by default); membership changes show
    up after at most one TTL

Why NOT cache event counters:
  - Admission must read `confirmed_count` fresh inside its own transaction
    (stale data = overbooking)

Every function is best effort: Redis errors are logged and reported as a
cache miss, never raised.
"""

from typing import Optional

from rsvp_admission.core.config import get_settings
from rsvp_admission.core.logging import get_logger
from rsvp_admission.infrastructure.redis_client import get_redis

logger = get_logger(__name__)


def _make_tier_key(subject_id: str) -> str:
    return f"tier:{subject_id}"


async def get_cached_tier(subject_id: str) -> Optional[str]:
    """Retrieve a cached tier, or None on miss / Redis unavailable."""
    client = await get_redis()
    if not client:
        return None

    key = _make_tier_key(subject_id)
    try:
        tier = await client.get(key)
        if tier:
            logger.debug("cache_hit", key=key)
            return tier
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_tier(subject_id: str, tier: str) -> None:
    client = await get_redis()
    if not client:
        return

    settings = get_settings()
    key = _make_tier_key(subject_id)
    try:
        await client.setex(key, settings.TIER_CACHE_TTL, tier)
        logger.debug("cache_set", key=key, ttl=settings.TIER_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


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
