# app/db/pool.py
"""
Process-wide PostgreSQL pool for the booking store.

Opened once in the application lifespan; every repository call borrows a
connection for a single statement and hands it straight back.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CLOSE_TIMEOUT_S = 30.0
# Above this share of checked-out connections the store reports unhealthy
SATURATION_PERCENT = 90


class StorePool:
    """Owns the AsyncConnectionPool and its open/close lifecycle."""

    def __init__(self, conninfo: str | None = None):
        self.conninfo = conninfo or settings.DATABASE_URL
        self.pool: AsyncConnectionPool | None = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self.pool is not None and not self._closed

    async def initialize(self) -> None:
        """Open the pool and prove one round trip works. Startup fails otherwise."""
        if self.pool is not None:
            logger.warning("Store pool already initialized")
            return
        if self._closed:
            raise RuntimeError("Cannot reopen a closed store pool")

        sizing = settings.get_db_pool_config()
        pool = AsyncConnectionPool(
            conninfo=self.conninfo,
            open=False,
            check=AsyncConnectionPool.check_connection,
            configure=self._configure_connection,
            **sizing,
        )

        try:
            await pool.open(wait=True, timeout=sizing["timeout"])
            self.pool = pool
            await self._round_trip()
        except (psycopg.Error, OSError, asyncio.TimeoutError) as e:
            self.pool = None
            await pool.close()
            logger.error("Store pool failed to open", error=str(e))
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        logger.info(
            "Store pool ready",
            min_size=sizing["min_size"],
            max_size=sizing["max_size"],
            environment=settings.environment,
        )

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        """Session defaults for every pooled connection."""
        conn.row_factory = dict_row
        # Entity writes are single statements, so each commits on its own
        await conn.set_autocommit(True)
        await conn.execute(
            sql.SQL("SET application_name = {}").format(
                sql.Literal(f"astro-booking-{settings.environment}")
            )
        )
        await conn.execute("SET timezone = 'UTC'")
        await conn.execute(
            sql.SQL("SET statement_timeout = {}").format(
                sql.Literal(f"{settings.DB_STATEMENT_TIMEOUT_S}s")
            )
        )

    async def _round_trip(self) -> float:
        """Run SELECT 1 and return its latency in milliseconds."""
        started = time.perf_counter()
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT 1 AS ok")
            row = await cursor.fetchone()
        if not row or row["ok"] != 1:
            raise RuntimeError("Store round trip returned an unexpected row")
        return (time.perf_counter() - started) * 1000

    async def close(self) -> None:
        if self.pool is None or self._closed:
            return

        self._closed = True
        try:
            await asyncio.wait_for(self.pool.close(), timeout=CLOSE_TIMEOUT_S)
            logger.info("Store pool closed")
        except asyncio.TimeoutError:
            logger.warning("Store pool close timed out", timeout_s=CLOSE_TIMEOUT_S)
        finally:
            self.pool = None

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Borrow a connection.

        Usage:
            async with store_pool.connection() as conn:
                await conn.execute("SELECT 1")
        """
        if not self.is_open:
            raise RuntimeError("Store pool is not open")

        async with self.pool.connection() as conn:
            yield conn

    async def health_check(self) -> dict[str, Any]:
        """Pool saturation plus a live round trip."""
        if not self.is_open:
            return {"healthy": False, "service": "database_pool", "error": "Pool not initialized"}

        stats = self.pool.get_stats()
        pool_size = stats.get("pool_size", 0)
        pool_available = stats.get("pool_available", 0)
        utilization = (pool_size - pool_available) / pool_size * 100 if pool_size else 0

        try:
            latency_ms = await self._round_trip()
        except (psycopg.Error, RuntimeError, OSError) as e:
            logger.error("Store health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "database_pool",
                "error": str(e),
                "error_type": type(e).__name__,
            }

        return {
            "healthy": utilization < SATURATION_PERCENT,
            "service": "database_pool",
            "connection_time_ms": round(latency_ms, 2),
            "pool_stats": {
                "pool_size": pool_size,
                "pool_available": pool_available,
                "pool_utilization_percent": round(utilization, 2),
                "requests_waiting": stats.get("requests_waiting", 0),
            },
        }


# Global pool instance
db_pool = StorePool()


async def get_db_connection():
    """Get database connection from pool."""
    return db_pool.connection()


async def db_health_check() -> dict[str, Any]:
    """Get database pool health status."""
    return await db_pool.health_check()
