from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field


class CreateAppointmentRequest(BaseModel):
    user_id: str = Field(..., min_length=1, validation_alias=AliasChoices("user_id", "userId"))
    astro_id: str = Field(..., min_length=1, validation_alias=AliasChoices("astro_id", "astroId"))
    appointment_date: datetime = Field(
        ..., validation_alias=AliasChoices("appointment_date", "appointmentDate")
    )


class UpdateAppointmentStatusRequest(BaseModel):
    # Plain str: membership is checked by the service so a bad value is a 400
    # with no store access, rather than a schema error.
    status: str
