"""
Tests for the shared Redis client: absence instead of exceptions while
disconnected, and the supervised reconnect.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from app.config import settings
from app.services.redis_client import CacheClient


def _connected_client() -> tuple[CacheClient, AsyncMock]:
    cache = CacheClient(url="redis://test:6379/0")
    redis_mock = AsyncMock()
    cache.client = redis_mock
    cache._connected = True
    return cache, redis_mock


def test_reconnect_delay_grows_and_caps():
    assert settings.reconnect_delay(1) == pytest.approx(0.05)
    assert settings.reconnect_delay(10) == pytest.approx(0.5)
    assert settings.reconnect_delay(20) == pytest.approx(1.0)
    assert settings.reconnect_delay(500) == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_operations_while_disconnected_return_absence():
    cache = CacheClient(url="redis://test:6379/0")
    cache._schedule_reconnect = MagicMock()

    assert cache.is_connected is False
    assert await cache.get("user:1") is None
    assert await cache.set_with_ttl("user:1", "{}", 3600) is False
    assert await cache.delete("user:1") is False
    assert await cache.ping() is False
    assert cache._schedule_reconnect.call_count == 4


@pytest.mark.asyncio
async def test_get_returns_value():
    cache, redis_mock = _connected_client()
    redis_mock.get.return_value = '{"id": "1"}'

    assert await cache.get("user:1") == '{"id": "1"}'
    redis_mock.get.assert_awaited_once_with("user:1")


@pytest.mark.asyncio
async def test_set_with_ttl_uses_setex():
    cache, redis_mock = _connected_client()
    redis_mock.setex.return_value = True

    assert await cache.set_with_ttl("allUsers", "[]", 3600) is True
    redis_mock.setex.assert_awaited_once_with("allUsers", 3600, "[]")


@pytest.mark.asyncio
async def test_delete_of_absent_key_succeeds():
    cache, redis_mock = _connected_client()
    redis_mock.delete.return_value = 0

    assert await cache.delete("user:missing") is True


@pytest.mark.asyncio
async def test_dropped_connection_marks_unavailable_and_reconnects():
    cache, redis_mock = _connected_client()
    redis_mock.get.side_effect = RedisConnectionError("connection reset")
    cache._schedule_reconnect = MagicMock()

    assert await cache.get("user:1") is None
    assert cache.is_connected is False
    cache._schedule_reconnect.assert_called_once()


@pytest.mark.asyncio
async def test_command_error_is_absorbed_without_disconnecting():
    cache, redis_mock = _connected_client()
    redis_mock.setex.side_effect = ResponseError("WRONGTYPE")

    assert await cache.set_with_ttl("user:1", "{}", 3600) is False
    assert cache.is_connected is True


@pytest.mark.asyncio
async def test_connect_pings_new_pool():
    cache = CacheClient(url="redis://test:6379/0")
    redis_instance = AsyncMock()

    with (
        patch("app.services.redis_client.ConnectionPool.from_url") as from_url,
        patch("app.services.redis_client.redis.Redis", return_value=redis_instance),
    ):
        assert await cache.connect() is True

    from_url.assert_called_once()
    assert from_url.call_args.kwargs["decode_responses"] is True
    redis_instance.ping.assert_awaited_once()
    assert cache.is_connected is True


@pytest.mark.asyncio
async def test_failed_initialize_is_not_fatal():
    cache = CacheClient(url="redis://test:6379/0")
    cache.connect = AsyncMock(return_value=False)
    cache._schedule_reconnect = MagicMock()

    await cache.initialize()

    assert cache.is_connected is False
    cache._schedule_reconnect.assert_called_once()


@pytest.mark.asyncio
async def test_reconnect_loop_retries_until_connected(monkeypatch):
    monkeypatch.setattr(settings, "REDIS_RECONNECT_STEP_MS", 0)
    cache = CacheClient(url="redis://test:6379/0")
    cache.connect = AsyncMock(side_effect=[False, False, True])

    await cache._reconnect_loop()

    assert cache.connect.await_count == 3


@pytest.mark.asyncio
async def test_close_stops_reconnect_and_releases_pool(monkeypatch):
    monkeypatch.setattr(settings, "REDIS_RECONNECT_STEP_MS", 1000)
    cache = CacheClient(url="redis://test:6379/0")
    cache.connect = AsyncMock(return_value=False)
    cache.client = AsyncMock()
    cache.pool = AsyncMock()
    client_mock, pool_mock = cache.client, cache.pool

    cache._schedule_reconnect()
    task = cache._reconnect_task
    await cache.close()

    assert task.cancelled()
    client_mock.aclose.assert_awaited_once()
    pool_mock.disconnect.assert_awaited_once()
    assert cache.client is None

    # Closed clients never schedule another reconnect
    cache._schedule_reconnect()
    assert cache._reconnect_task is None
