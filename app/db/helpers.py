# app/db/helpers.py
"""
Query helpers for the repository layer.

Every psycopg failure leaves this module as a DatabaseError. Constraint
violations get their own subclasses so services can answer 400 instead
of 500, and only connection-level failures are marked recoverable.
"""

import asyncio
import functools
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import errors as pg_errors
from psycopg import sql

from app.db.pool import get_db_connection
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

Query = str | sql.Composable


class DatabaseError(Exception):
    """A store operation failed; ``recoverable`` means a retry may succeed."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


class DuplicateRecordError(DatabaseError):
    """A unique constraint rejected the write."""


class MissingReferenceError(DatabaseError):
    """A foreign key pointed at a record that does not exist."""


def _wrap_error(e: psycopg.Error, query: Query, operation: str) -> DatabaseError:
    if isinstance(e, pg_errors.UniqueViolation):
        logger.info("Unique constraint rejected write", operation=operation, error=str(e))
        return DuplicateRecordError(str(e), operation=operation, recoverable=False)

    if isinstance(e, pg_errors.ForeignKeyViolation):
        logger.info("Foreign key rejected write", operation=operation, error=str(e))
        return MissingReferenceError(str(e), operation=operation, recoverable=False)

    preview = query if isinstance(query, str) else repr(query)
    logger.error("Database query failed", operation=operation, query=preview[:100], error=str(e))
    return DatabaseError(
        f"Query failed: {e}",
        operation=operation,
        recoverable=isinstance(e, psycopg.OperationalError),
    )


@asynccontextmanager
async def _cursor(
    query: Query, connection: psycopg.AsyncConnection | None, operation: str
) -> AsyncIterator[psycopg.AsyncCursor]:
    """Cursor on the given connection, or on one borrowed for this query only."""
    try:
        if connection is not None:
            async with connection.cursor() as cur:
                yield cur
        else:
            async with await get_db_connection() as conn:
                async with conn.cursor() as cur:
                    yield cur
    except psycopg.Error as e:
        raise _wrap_error(e, query, operation) from e


async def fetch_one(
    query: Query, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> dict[str, Any] | None:
    """Execute query and return the first row as a dict, or None."""
    async with _cursor(query, connection, "fetch_one") as cur:
        await cur.execute(query, params)
        return await cur.fetchone()


async def fetch_all(
    query: Query, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    """Execute query and return every row as a dict."""
    async with _cursor(query, connection, "fetch_all") as cur:
        await cur.execute(query, params)
        return await cur.fetchall()


async def execute_query(
    query: Query, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """Execute a statement and return the affected row count."""
    async with _cursor(query, connection, "execute") as cur:
        await cur.execute(query, params)
        return cur.rowcount


def with_db_retry(max_retries: int = 3, base_delay: float = 0.1):
    """
    Retry reads on recoverable DatabaseErrors with exponential backoff.

    Permanent errors are re-raised untouched. Exhausted retries raise a
    non-recoverable DatabaseError chained to the last failure.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except DatabaseError as e:
                    if not e.recoverable:
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "Database operation failed after all retries",
                            operation=func.__name__,
                            attempts=attempt + 1,
                            error=str(e),
                        )
                        raise DatabaseError(
                            f"Operation failed after {max_retries} retries: {e}",
                            operation=func.__name__,
                            recoverable=False,
                        ) from e

                    delay = base_delay * (2**attempt)
                    logger.warning(
                        "Database operation failed, retrying",
                        operation=func.__name__,
                        attempt=attempt + 1,
                        delay=delay,
                        error=str(e),
                    )
                    attempt += 1
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
