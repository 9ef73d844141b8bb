from datetime import datetime
from typing import Literal, get_args

from pydantic import BaseModel

AppointmentStatus = Literal["pending", "approved", "rejected"]

APPOINTMENT_STATUSES: tuple[str, ...] = get_args(AppointmentStatus)
INITIAL_APPOINTMENT_STATUS: AppointmentStatus = "pending"


class AppointmentUser(BaseModel):
    id: str
    name: str
    email: str


class AppointmentAstrologer(BaseModel):
    id: str
    name: str
    specialization: str | None = None


class Appointment(BaseModel):
    """Appointment with its user and astrologer references populated."""

    id: str
    user: AppointmentUser | None = None
    astrologer: AppointmentAstrologer | None = None
    appointment_date: datetime
    status: AppointmentStatus = INITIAL_APPOINTMENT_STATUS
    created_at: datetime
    updated_at: datetime
