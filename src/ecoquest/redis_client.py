"""Redis client for table change notifications.

Redis only carries "table changed" events for live views. Without it the
API keeps working and the WebSocket channels simply stay quiet, so a
missing or unreachable Redis leaves the client unset instead of failing
startup.
"""

import redis.asyncio as redis
import structlog

from ecoquest.config import Settings

logger = structlog.get_logger()

_client: redis.Redis | None = None


async def init_redis(settings: Settings) -> redis.Redis | None:
    """Connect and ping. Returns None (and logs) when notifications are off or Redis is down."""
    global _client  # noqa: PLW0603
    if not settings.redis_url:
        logger.info("change_notifications_disabled")
        return None

    client = redis.from_url(  # type: ignore[no-untyped-call]
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.redis_max_connections,
    )
    try:
        await client.ping()
    except (redis.RedisError, OSError) as exc:
        logger.warning("redis_unavailable", error=str(exc))
        await client.aclose()
        return None

    _client = client
    return _client


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_optional_redis() -> redis.Redis | None:
    """The connected client, or None when change notifications are off."""
    return _client
