"""Persistence for appointments, with user and astrologer populated."""

from typing import Any

from app.models.domain.appointment_domain import (
    Appointment,
    AppointmentAstrologer,
    AppointmentUser,
)
from app.repositories.base import EntityRepository


class AppointmentRepository(EntityRepository):
    table = "appointments"
    alias = "p"
    # Only name/email of the user and name/specialization of the astrologer
    # are projected; password hashes never leave the users table.
    select_template = """
        SELECT
            p.id, p.appointment_date, p.status, p.created_at, p.updated_at,
            u.id AS user_ref_id, u.name AS user_name, u.email AS user_email,
            s.id AS astro_ref_id, s.name AS astro_name,
            s.specialization AS astro_specialization
        FROM {source} p
        LEFT JOIN users u ON u.id = p.user_id
        LEFT JOIN astrologers s ON s.id = p.astro_id
    """
    writable_columns = frozenset({"user_id", "astro_id", "appointment_date", "status"})
    filterable_columns = frozenset({"id", "user_id", "astro_id", "status"})
    reference_columns = frozenset({"user_id", "astro_id"})

    @classmethod
    def _row_to_model(cls, row: dict[str, Any]) -> Appointment:
        user = None
        if row.get("user_ref_id"):
            user = AppointmentUser(
                id=str(row["user_ref_id"]),
                name=row["user_name"],
                email=row["user_email"],
            )

        astrologer = None
        if row.get("astro_ref_id"):
            astrologer = AppointmentAstrologer(
                id=str(row["astro_ref_id"]),
                name=row["astro_name"],
                specialization=row.get("astro_specialization"),
            )

        return Appointment(
            id=str(row["id"]),
            user=user,
            astrologer=astrologer,
            appointment_date=row["appointment_date"],
            status=row["status"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
