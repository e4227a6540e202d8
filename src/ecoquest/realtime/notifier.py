"""Per-table change notifications over Redis pub/sub.

Every successful ProfileStore write publishes ``{"table": <name>}`` on
``changes:<name>``. Subscribers only learn that *something* changed in a
table and re-read; the payload is never used for state.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Iterable

import redis.asyncio as aioredis
import structlog

logger = structlog.get_logger()

CHANNEL_PREFIX = "changes:"


def channel_for(table: str) -> str:
    return f"{CHANNEL_PREFIX}{table}"


def table_for(channel: str) -> str | None:
    if not channel.startswith(CHANNEL_PREFIX):
        return None
    return channel[len(CHANNEL_PREFIX):]


class ChangeNotifier:
    """Publishes and subscribes to table change events."""

    def __init__(self, redis_client: aioredis.Redis | None) -> None:
        self.redis = redis_client

    async def notify(self, table: str) -> None:
        """Publish a change event for ``table``. Never raises."""
        if self.redis is None:
            return
        try:
            await self.redis.publish(channel_for(table), json.dumps({"table": table}))
        except (aioredis.RedisError, OSError) as exc:
            logger.warning("change_notify_failed", table=table, error=str(exc))

    async def subscribe(self, tables: Iterable[str]) -> AsyncIterator[str]:
        """Yield the table name each time one of ``tables`` changes."""
        if self.redis is None:
            msg = "Change subscriptions need a Redis client."
            raise RuntimeError(msg)

        pubsub = self.redis.pubsub()
        channels = [channel_for(t) for t in tables]
        await pubsub.subscribe(*channels)
        logger.info("change_subscription_started", channels=channels)
        try:
            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None:
                    continue
                channel = message.get("channel", "")
                if isinstance(channel, bytes):
                    channel = channel.decode()
                table = table_for(channel)
                if table is not None:
                    yield table
        finally:
            await pubsub.unsubscribe()
            await pubsub.aclose()
            logger.info("change_subscription_stopped")
