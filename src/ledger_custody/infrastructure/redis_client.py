"""Redis client backing transaction-id replay protection.

Usage:
    from ledger_custody.infrastructure.redis_client import get_redis, close_redis

    redis = get_redis()
    redis.set("key", "value", ex=3600)
"""

from __future__ import annotations

import redis

from ledger_custody.config import get_settings
from ledger_custody.logging_config import get_logger

logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


def init_redis() -> redis.Redis:
    """Initialize and return the Redis client. Called during app startup."""
    global _redis_client
    settings = get_settings()
    _redis_client = redis.Redis.from_url(
        settings.redis_url,
        decode_responses=True,
    )
    # Verify connectivity
    _redis_client.ping()
    logger.info("redis.connected", url=settings.redis_url)
    return _redis_client


def get_redis() -> redis.Redis:
    """Return the Redis client singleton. Must call init_redis() first."""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


def close_redis() -> None:
    """Close the Redis connection. Called during app shutdown."""
    global _redis_client
    if _redis_client is not None:
        _redis_client.close()
        logger.info("redis.disconnected")
        _redis_client = None
