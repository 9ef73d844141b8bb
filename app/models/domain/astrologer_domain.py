from datetime import datetime

from pydantic import BaseModel

from app.models.domain.appointment_domain import AppointmentStatus


class CurrentConnection(BaseModel):
    """Projection of the appointment an astrologer is currently serving."""

    id: str
    appointment_date: datetime
    status: AppointmentStatus


class Astrologer(BaseModel):
    id: str
    name: str
    email: str
    specialization: str | None = None
    experience: int = 0
    is_top_astro: bool = False
    availability: bool = True
    flow_multiplier: float = 1.0
    curr_connection: CurrentConnection | None = None
    created_at: datetime
    updated_at: datetime
