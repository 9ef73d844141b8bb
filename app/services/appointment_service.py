"""
Appointment service.

Bookings start as ``pending``; afterwards only the status changes, and
only to a member of APPOINTMENT_STATUSES. Any member may follow any other.
An invalid status is rejected before the store or cache is touched.
"""

from typing import Any

from app.db.helpers import MissingReferenceError
from app.infrastructure.observability.logging import get_logger
from app.models.api.appointment_request import CreateAppointmentRequest
from app.models.domain.appointment_domain import (
    APPOINTMENT_STATUSES,
    INITIAL_APPOINTMENT_STATUS,
    Appointment,
)
from app.repositories.appointment_repository import AppointmentRepository
from app.services.cache import (
    APPOINTMENT,
    EntityCache,
    entity_key,
    list_key,
    write_invalidation_keys,
)
from app.services.errors import EntityNotFoundError, EntityValidationError

logger = get_logger(__name__)


def validate_status(status: Any) -> str:
    if status not in APPOINTMENT_STATUSES:
        raise EntityValidationError("Invalid status value")
    return status


class AppointmentService:
    def __init__(self, repository: Any = AppointmentRepository, cache: EntityCache | None = None):
        self.repository = repository
        self.cache = cache if cache is not None else EntityCache()

    async def create_appointment(self, request: CreateAppointmentRequest) -> Appointment:
        try:
            appointment = await self.repository.create(
                {
                    "user_id": request.user_id,
                    "astro_id": request.astro_id,
                    "appointment_date": request.appointment_date,
                    "status": INITIAL_APPOINTMENT_STATUS,
                }
            )
        except MissingReferenceError as e:
            raise EntityValidationError("Referenced user or astrologer does not exist") from e

        await self.cache.invalidate(*write_invalidation_keys(APPOINTMENT))
        logger.info(
            "Appointment created",
            appointment_id=appointment.id,
            user_id=request.user_id,
            astro_id=request.astro_id,
        )
        return appointment

    async def list_appointments(self) -> list[Appointment]:
        async def load() -> list[dict]:
            appointments = await self.repository.find()
            return [appointment.model_dump(mode="json") for appointment in appointments]

        payload = await self.cache.read_through(list_key(APPOINTMENT), load)
        return [Appointment.model_validate(item) for item in payload]

    async def get_appointment(self, appointment_id: str) -> Appointment:
        async def load() -> dict | None:
            appointment = await self.repository.find_by_id(appointment_id)
            return appointment.model_dump(mode="json") if appointment else None

        payload = await self.cache.read_through(entity_key(APPOINTMENT, appointment_id), load)
        if payload is None:
            raise EntityNotFoundError("appointment", appointment_id)
        return Appointment.model_validate(payload)

    async def update_status(self, appointment_id: str, status: Any) -> Appointment:
        status = validate_status(status)

        appointment = await self.repository.find_by_id_and_update(
            appointment_id, {"status": status}
        )
        if appointment is None:
            raise EntityNotFoundError("appointment", appointment_id)

        await self.cache.invalidate(*write_invalidation_keys(APPOINTMENT, appointment_id))
        await self.cache.write(
            entity_key(APPOINTMENT, appointment_id), appointment.model_dump(mode="json")
        )

        logger.info("Appointment status updated", appointment_id=appointment_id, status=status)
        return appointment

    async def delete_appointment(self, appointment_id: str) -> Appointment:
        appointment = await self.repository.find_by_id_and_delete(appointment_id)
        if appointment is None:
            raise EntityNotFoundError("appointment", appointment_id)

        await self.cache.invalidate(*write_invalidation_keys(APPOINTMENT, appointment_id))
        logger.info("Appointment deleted", appointment_id=appointment_id)
        return appointment


appointment_service = AppointmentService()


def get_appointment_service() -> AppointmentService:
    return appointment_service
