"""
Appointment endpoints under /api/v1/appointments.

New bookings are always ``pending``; PUT only changes the status.
"""

from fastapi import APIRouter, Depends, status

from app.db.helpers import DatabaseError
from app.models.api.appointment_request import (
    CreateAppointmentRequest,
    UpdateAppointmentStatusRequest,
)
from app.models.api.common import MessageResponse
from app.models.domain.appointment_domain import Appointment
from app.routes.errors import to_http_error
from app.services.appointment_service import AppointmentService, get_appointment_service
from app.services.errors import BookingServiceError

router = APIRouter(prefix="/api/v1/appointments", tags=["appointments"])


@router.post("/create", response_model=Appointment, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    request: CreateAppointmentRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return await service.create_appointment(request)
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Failed to create appointment") from e


@router.get("/all", response_model=list[Appointment])
async def list_appointments(service: AppointmentService = Depends(get_appointment_service)):
    try:
        return await service.list_appointments()
    except DatabaseError as e:
        raise to_http_error(e, "Failed to fetch appointments") from e


@router.get("/{appointment_id}", response_model=Appointment)
async def get_appointment(
    appointment_id: str, service: AppointmentService = Depends(get_appointment_service)
):
    try:
        return await service.get_appointment(appointment_id)
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Error retrieving appointment") from e


@router.put("/{appointment_id}", response_model=Appointment)
async def update_appointment_status(
    appointment_id: str,
    request: UpdateAppointmentStatusRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return await service.update_status(appointment_id, request.status)
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Failed to update appointment") from e


@router.delete("/{appointment_id}", response_model=MessageResponse)
async def delete_appointment(
    appointment_id: str, service: AppointmentService = Depends(get_appointment_service)
):
    try:
        await service.delete_appointment(appointment_id)
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Failed to delete appointment") from e

    return MessageResponse(message="Appointment deleted successfully")
