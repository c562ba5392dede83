"""
Redis client for tier caching and slot-freed publication.
Separated from business logic for clean architecture.

Redis is advisory only: every caller treats a missing client as "feature
off" and keeps working against the database.
"""

from typing import Optional

import redis.asyncio as redis

from rsvp_admission.core.config import get_settings
from rsvp_admission.core.logging import get_logger
from rsvp_admission.core.metrics import redis_connection_errors, redis_circuit_breaker_open

logger = get_logger(__name__)


class RedisClient:
    """Lazily connected singleton Redis client with connection pooling."""

    _instance: Optional[redis.Redis] = None

    @classmethod
    async def get_client(cls) -> Optional[redis.Redis]:
        """Get or create the Redis client. Returns None if Redis is disabled or down."""
        settings = get_settings()
        if not settings.REDIS_ENABLED:
            return None

        if cls._instance is None:
            client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
            try:
                await client.ping()
            except Exception as e:
                redis_connection_errors.inc()
                redis_circuit_breaker_open.set(1)
                logger.error("redis_connection_failed", url=settings.REDIS_URL, error=str(e))
                await client.aclose()
                return None
            redis_circuit_breaker_open.set(0)
            logger.info("redis_connected", url=settings.REDIS_URL)
            cls._instance = client

        return cls._instance

    @classmethod
    async def close(cls):
        """Close Redis connection."""
        if cls._instance:
            await cls._instance.aclose()
            cls._instance = None


async def get_redis() -> Optional[redis.Redis]:
    """Get Redis client instance."""
    return await RedisClient.get_client()


async def close_redis() -> None:
    await RedisClient.close()
