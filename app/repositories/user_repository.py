"""Persistence for users, with the assigned astrologer populated."""

from typing import Any

from app.db.helpers import fetch_one, with_db_retry
from app.models.domain.user_domain import AssignedAstrologer, User
from app.repositories.base import EntityRepository


class UserRepository(EntityRepository):
    table = "users"
    alias = "u"
    select_template = """
        SELECT
            u.id, u.name, u.email, u.role, u.created_at, u.updated_at,
            s.id AS astro_id, s.name AS astro_name, s.email AS astro_email,
            s.specialization AS astro_specialization,
            s.is_top_astro AS astro_is_top_astro, s.availability AS astro_availability
        FROM {source} u
        LEFT JOIN astrologers s ON s.id = u.assigned_astrologer_id
    """
    writable_columns = frozenset(
        {"name", "email", "password_hash", "role", "assigned_astrologer_id"}
    )
    filterable_columns = frozenset({"id", "email", "role", "assigned_astrologer_id"})
    reference_columns = frozenset({"assigned_astrologer_id"})

    @classmethod
    def _row_to_model(cls, row: dict[str, Any]) -> User:
        assigned = None
        if row.get("astro_id"):
            assigned = AssignedAstrologer(
                id=str(row["astro_id"]),
                name=row["astro_name"],
                email=row["astro_email"],
                specialization=row.get("astro_specialization"),
                is_top_astro=row["astro_is_top_astro"],
                availability=row["astro_availability"],
            )

        return User(
            id=str(row["id"]),
            name=row["name"],
            email=row["email"],
            role=row["role"],
            assigned_astrologer=assigned,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def find_credentials(cls, email: str) -> tuple[User, str] | None:
        """User plus stored password hash, for login only."""
        query = f"""
            SELECT populated.*, credentials.password_hash
            FROM ({cls.select_template.format(source='users')}) populated
            JOIN users credentials ON credentials.id = populated.id
            WHERE populated.email = %s
        """
        row = await fetch_one(query, (email,))
        if not row:
            return None
        return cls._row_to_model(row), row["password_hash"]
