"""Redis client setup for change notifications."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import redis.asyncio as aioredis

from ecoquest import redis_client
from ecoquest.config import Settings


@pytest.fixture(autouse=True)
def _reset_client():
    redis_client._client = None
    yield
    redis_client._client = None


class TestInitRedis:
    @pytest.mark.asyncio
    async def test_empty_url_disables_notifications(self):
        assert await redis_client.init_redis(Settings(redis_url="")) is None
        assert redis_client.get_optional_redis() is None

    @pytest.mark.asyncio
    async def test_unreachable_redis_is_left_unset(self):
        client = MagicMock()
        client.ping = AsyncMock(side_effect=aioredis.ConnectionError("refused"))
        client.aclose = AsyncMock()
        with patch.object(redis_client.redis, "from_url", return_value=client):
            assert await redis_client.init_redis(Settings(redis_url="redis://nowhere:6379/0")) is None
        client.aclose.assert_awaited_once()
        assert redis_client.get_optional_redis() is None

    @pytest.mark.asyncio
    async def test_connected_client_is_shared(self):
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)
        client.aclose = AsyncMock()
        with patch.object(redis_client.redis, "from_url", return_value=client) as from_url:
            assert await redis_client.init_redis(Settings(redis_max_connections=7)) is client
        assert from_url.call_args.kwargs["max_connections"] == 7
        assert redis_client.get_optional_redis() is client

        await redis_client.close_redis()
        client.aclose.assert_awaited_once()
        assert redis_client.get_optional_redis() is None
