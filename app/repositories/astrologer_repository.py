"""Persistence for astrologers, with the current connection populated."""

from typing import Any

from app.models.domain.astrologer_domain import Astrologer, CurrentConnection
from app.repositories.base import EntityRepository


class AstrologerRepository(EntityRepository):
    table = "astrologers"
    alias = "a"
    select_template = """
        SELECT
            a.id, a.name, a.email, a.specialization, a.experience,
            a.is_top_astro, a.availability, a.flow_multiplier,
            a.created_at, a.updated_at,
            c.id AS conn_id, c.appointment_date AS conn_date, c.status AS conn_status
        FROM {source} a
        LEFT JOIN appointments c ON c.id = a.curr_connection_id
    """
    writable_columns = frozenset(
        {
            "name",
            "email",
            "specialization",
            "experience",
            "is_top_astro",
            "availability",
            "flow_multiplier",
            "curr_connection_id",
        }
    )
    filterable_columns = frozenset({"id", "email", "is_top_astro", "availability"})
    reference_columns = frozenset({"curr_connection_id"})

    @classmethod
    def _row_to_model(cls, row: dict[str, Any]) -> Astrologer:
        connection = None
        if row.get("conn_id"):
            connection = CurrentConnection(
                id=str(row["conn_id"]),
                appointment_date=row["conn_date"],
                status=row["conn_status"],
            )

        return Astrologer(
            id=str(row["id"]),
            name=row["name"],
            email=row["email"],
            specialization=row.get("specialization"),
            experience=row["experience"],
            is_top_astro=row["is_top_astro"],
            availability=row["availability"],
            flow_multiplier=row["flow_multiplier"],
            curr_connection=connection,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
