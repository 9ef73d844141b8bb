"""
Shared persistence operations for the entity tables.

Each repository exposes the same document-style capability: create,
find_one, find, find_by_id, find_by_id_and_update and
find_by_id_and_delete. Every call returns records with their references
populated. Writes are a single statement: the INSERT/UPDATE/DELETE runs in
a CTE named ``written`` and the populated projection is selected from it,
so a write is atomic and never needs a second round trip.
"""

from collections.abc import Mapping
from typing import Any, ClassVar
from uuid import UUID

from psycopg import sql

from app.db.helpers import fetch_all, fetch_one, with_db_retry
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def parse_id(value: str | None) -> UUID | None:
    """Return the UUID for a record id, or None when it cannot be one."""
    if value is None:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


class EntityRepository:
    """Base class; subclasses describe their table and populated projection."""

    table: ClassVar[str]
    alias: ClassVar[str]
    # SELECT ... FROM {source} <alias> LEFT JOIN ... ; {source} is the table or the CTE
    select_template: ClassVar[str]
    writable_columns: ClassVar[frozenset[str]]
    filterable_columns: ClassVar[frozenset[str]]
    reference_columns: ClassVar[frozenset[str]] = frozenset()

    @classmethod
    def _row_to_model(cls, row: dict[str, Any]) -> Any:
        raise NotImplementedError

    @classmethod
    def _rows_to_models(cls, rows: list[dict[str, Any]]) -> list[Any]:
        return [cls._row_to_model(row) for row in rows]

    @classmethod
    def _select(cls, source: str | None = None) -> sql.Composed:
        return sql.SQL(cls.select_template).format(
            source=sql.Identifier(source or cls.table)
        )

    @classmethod
    def _column(cls, name: str) -> sql.Composed:
        return sql.SQL("{}.{}").format(sql.Identifier(cls.alias), sql.Identifier(name))

    @classmethod
    def _where(cls, filters: Mapping[str, Any]) -> tuple[sql.Composable, tuple]:
        unknown = set(filters) - cls.filterable_columns
        if unknown:
            raise ValueError(f"Cannot filter {cls.table} by {sorted(unknown)}")
        if not filters:
            return sql.SQL(""), ()

        conditions = [sql.SQL("{} = %s").format(cls._column(name)) for name in filters]
        return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(conditions), tuple(filters.values())

    @classmethod
    def _check_writable(cls, fields: Mapping[str, Any]) -> None:
        unknown = set(fields) - cls.writable_columns
        if unknown:
            raise ValueError(f"Cannot write {cls.table} columns {sorted(unknown)}")

    @classmethod
    def _prepare_values(cls, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Reference ids that cannot be UUIDs are written as a nil UUID so the FK rejects them."""
        values = dict(fields)
        for name in cls.reference_columns & set(values):
            if values[name] is not None and parse_id(values[name]) is None:
                values[name] = UUID(int=0)
        return values

    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def find_by_id(cls, record_id: str) -> Any | None:
        parsed = parse_id(record_id)
        if parsed is None:
            return None

        query = cls._select() + sql.SQL(" WHERE {} = %s").format(cls._column("id"))
        row = await fetch_one(query, (parsed,))
        return cls._row_to_model(row) if row else None

    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def find_one(cls, filters: Mapping[str, Any]) -> Any | None:
        where, params = cls._where(filters)
        row = await fetch_one(cls._select() + where + sql.SQL(" LIMIT 1"), params)
        return cls._row_to_model(row) if row else None

    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def find(cls, filters: Mapping[str, Any] | None = None) -> list[Any]:
        where, params = cls._where(filters or {})
        order = sql.SQL(" ORDER BY {}").format(cls._column("created_at"))
        rows = await fetch_all(cls._select() + where + order, params)
        return cls._rows_to_models(rows)

    @classmethod
    async def create(cls, fields: Mapping[str, Any]) -> Any:
        cls._check_writable(fields)
        values = cls._prepare_values(fields)

        query = sql.SQL(
            "WITH written AS "
            "(INSERT INTO {table} ({columns}) VALUES ({placeholders}) RETURNING *) "
        ).format(
            table=sql.Identifier(cls.table),
            columns=sql.SQL(", ").join(sql.Identifier(name) for name in values),
            placeholders=sql.SQL(", ").join(sql.Placeholder() for _ in values),
        ) + cls._select("written")

        row = await fetch_one(query, tuple(values.values()))
        record = cls._row_to_model(row)
        logger.info("Record created", table=cls.table, record_id=record.id)
        return record

    @classmethod
    async def find_by_id_and_update(cls, record_id: str, fields: Mapping[str, Any]) -> Any | None:
        """Apply only the given columns; None when the record does not exist."""
        parsed = parse_id(record_id)
        if parsed is None:
            return None
        if not fields:
            return await cls.find_by_id(record_id)

        cls._check_writable(fields)
        values = cls._prepare_values(fields)

        assignments = [
            sql.SQL("{} = %s").format(sql.Identifier(name)) for name in values
        ]
        assignments.append(sql.SQL("updated_at = NOW()"))

        query = sql.SQL(
            "WITH written AS (UPDATE {table} SET {assignments} WHERE id = %s RETURNING *) "
        ).format(
            table=sql.Identifier(cls.table),
            assignments=sql.SQL(", ").join(assignments),
        ) + cls._select("written")

        row = await fetch_one(query, (*values.values(), parsed))
        if not row:
            return None

        logger.info("Record updated", table=cls.table, record_id=record_id, fields=sorted(values))
        return cls._row_to_model(row)

    @classmethod
    async def find_by_id_and_delete(cls, record_id: str) -> Any | None:
        """Remove the record and return its last populated state."""
        parsed = parse_id(record_id)
        if parsed is None:
            return None

        query = sql.SQL(
            "WITH written AS (DELETE FROM {table} WHERE id = %s RETURNING *) "
        ).format(
            table=sql.Identifier(cls.table)
        ) + cls._select("written")

        row = await fetch_one(query, (parsed,))
        if not row:
            return None

        logger.info("Record deleted", table=cls.table, record_id=record_id)
        return cls._row_to_model(row)
