# app/services/redis_client.py
"""
Process-wide Redis client used as the side cache.

The cache is never the source of truth, so every operation degrades to
"absent" instead of raising: reads miss, writes and deletes report False.
A dropped connection marks the client unavailable and starts a single
supervised reconnect task; requests that arrive in the gap skip the cache.
"""

import asyncio

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_UNAVAILABLE_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


class CacheClient:
    """Redis operations with connection pooling and transparent reconnect."""

    def __init__(self, url: str | None = None):
        self.url = url or settings.REDIS_URL
        self.pool: ConnectionPool | None = None
        self.client: redis.Redis | None = None
        self._connected = False
        self._closing = False
        self._reconnect_task: asyncio.Task | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def initialize(self) -> None:
        """Open the connection on startup. A cache outage is not fatal."""
        self._closing = False
        if not await self.connect():
            logger.warning("Redis unavailable at startup, continuing without cache")
            self._schedule_reconnect()

    async def connect(self) -> bool:
        """Create the pool if needed and verify it with a PING."""
        if self._connected:
            return True

        try:
            if self.client is None:
                self.pool = ConnectionPool.from_url(
                    self.url,
                    max_connections=settings.REDIS_MAX_CONNECTIONS,
                    socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
                    socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
                    health_check_interval=30,
                    decode_responses=True,
                )
                self.client = redis.Redis(connection_pool=self.pool)

            await self.client.ping()
            self._connected = True
            logger.info(
                "Redis connection established", max_connections=settings.REDIS_MAX_CONNECTIONS
            )
            return True

        except (RedisError, OSError) as e:
            self._connected = False
            logger.warning("Redis connection attempt failed", error=str(e))
            return False

    def _schedule_reconnect(self) -> None:
        """Start the reconnect supervisor unless one is already running."""
        if self._closing:
            return
        if self._reconnect_task and not self._reconnect_task.done():
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (e.g. called from sync code); next async call retries
            return

        self._reconnect_task = loop.create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        attempt = 0
        while not self._closing and not self._connected:
            attempt += 1
            await asyncio.sleep(settings.reconnect_delay(attempt))
            if await self.connect():
                logger.info("Redis reconnected", attempts=attempt)
                return

    def _mark_unavailable(self, operation: str, key: str, error: Exception) -> None:
        self._connected = False
        logger.warning(
            "Redis unavailable, falling back to store",
            operation=operation,
            key=key[:60],
            error=str(error),
        )
        self._schedule_reconnect()

    def _acquire(self) -> redis.Redis | None:
        """Reuse the live client, or report the cache as absent."""
        if self._connected and self.client is not None:
            return self.client
        self._schedule_reconnect()
        return None

    async def ping(self) -> bool:
        client = self._acquire()
        if client is None:
            return False
        try:
            return bool(await client.ping())
        except _UNAVAILABLE_ERRORS as e:
            self._mark_unavailable("PING", "", e)
            return False
        except RedisError as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def get(self, key: str) -> str | None:
        client = self._acquire()
        if client is None:
            return None
        try:
            return await client.get(key)
        except _UNAVAILABLE_ERRORS as e:
            self._mark_unavailable("GET", key, e)
            return None
        except RedisError as e:
            logger.error("Redis GET failed", key=key[:60], error=str(e))
            return None

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        client = self._acquire()
        if client is None:
            return False
        try:
            if ttl_s:
                result = await client.setex(key, ttl_s, value)
            else:
                result = await client.set(key, value)
            return bool(result)
        except _UNAVAILABLE_ERRORS as e:
            self._mark_unavailable("SET", key, e)
            return False
        except RedisError as e:
            logger.error("Redis SET failed", key=key[:60], error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        """Delete a key. Deleting an absent key is not an error."""
        client = self._acquire()
        if client is None:
            return False
        try:
            await client.delete(key)
            return True
        except _UNAVAILABLE_ERRORS as e:
            self._mark_unavailable("DELETE", key, e)
            return False
        except RedisError as e:
            logger.error("Redis DELETE failed", key=key[:60], error=str(e))
            return False

    async def close(self) -> None:
        """Clean shutdown: stop reconnecting, then release the pool."""
        self._closing = True

        if self._reconnect_task and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None

        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            logger.info("Redis client closed")
        except (RedisError, OSError) as e:
            logger.error("Error closing Redis client", error=str(e))
        finally:
            self.client = None
            self.pool = None
            self._connected = False


# Global instance
cache_client = CacheClient()
