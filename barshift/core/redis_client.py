"""Redis connection used for the domain events channel."""

import redis
import structlog

from barshift.config import settings

logger = structlog.get_logger(__name__)

# Shared client, created lazily on first use
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Shared Redis client for publishing domain events.

    The client connects lazily, so building it never fails even when Redis
    is down; publishing reports the failure instead.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """Whether the events channel's Redis answers a ping."""
    try:
        return bool(get_redis_client().ping())
    except redis.RedisError as e:
        logger.debug("redis_ping_failed", error=str(e))
        return False


def close_redis_connection() -> None:
    """Close the shared client so the next call reconnects."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None
