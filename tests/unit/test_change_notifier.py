"""Table change notifications over Redis pub/sub."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as aioredis

from ecoquest.realtime.notifier import ChangeNotifier, channel_for, table_for


class TestChannelNames:
    def test_round_trip(self):
        assert channel_for("users") == "changes:users"
        assert table_for("changes:users") == "users"

    def test_foreign_channel(self):
        assert table_for("pubsub:other") is None


class TestNotify:
    @pytest.mark.asyncio
    async def test_publishes_table_name(self):
        redis = MagicMock()
        redis.publish = AsyncMock(return_value=1)
        await ChangeNotifier(redis).notify("posts")
        channel, payload = redis.publish.await_args.args
        assert channel == "changes:posts"
        assert json.loads(payload) == {"table": "posts"}

    @pytest.mark.asyncio
    async def test_redis_failure_is_swallowed(self):
        redis = MagicMock()
        redis.publish = AsyncMock(side_effect=aioredis.ConnectionError("gone"))
        await ChangeNotifier(redis).notify("users")

    @pytest.mark.asyncio
    async def test_without_redis_is_a_no_op(self):
        await ChangeNotifier(None).notify("users")


class TestSubscribe:
    @pytest.mark.asyncio
    async def test_yields_changed_tables(self):
        pubsub = MagicMock()
        pubsub.subscribe = AsyncMock()
        pubsub.unsubscribe = AsyncMock()
        pubsub.aclose = AsyncMock()
        pubsub.get_message = AsyncMock(side_effect=[
            None,
            {"type": "message", "channel": b"changes:users", "data": b'{"table": "users"}'},
            {"type": "message", "channel": "changes:posts", "data": '{"table": "posts"}'},
        ])
        redis = MagicMock()
        redis.pubsub.return_value = pubsub

        stream = ChangeNotifier(redis).subscribe(["users", "posts"])
        assert await stream.__anext__() == "users"
        assert await stream.__anext__() == "posts"
        await stream.aclose()

        pubsub.subscribe.assert_awaited_once_with("changes:users", "changes:posts")
        pubsub.unsubscribe.assert_awaited_once()
        pubsub.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_requires_redis(self):
        with pytest.raises(RuntimeError):
            await ChangeNotifier(None).subscribe(["users"]).__anext__()
