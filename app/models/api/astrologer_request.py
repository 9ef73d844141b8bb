from typing import ClassVar

from pydantic import AliasChoices, BaseModel, Field

from app.models.api.common import PartialUpdateRequest


class CreateAstrologerRequest(BaseModel):
    """Astrologer profile, also the record shape of a batch item."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    specialization: str | None = Field(None, max_length=200)
    experience: int = Field(0, ge=0)
    is_top_astro: bool = Field(False, validation_alias=AliasChoices("is_top_astro", "isTopAstro"))
    availability: bool = True
    flow_multiplier: float = Field(1.0, gt=0)


class UpdateAstrologerRequest(PartialUpdateRequest):
    NULLABLE_FIELDS: ClassVar[frozenset[str]] = frozenset({"specialization", "curr_connection_id"})

    name: str | None = Field(None, min_length=1, max_length=100)
    email: str | None = Field(None, min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    specialization: str | None = Field(None, max_length=200)
    experience: int | None = Field(None, ge=0)
    is_top_astro: bool | None = Field(
        None, validation_alias=AliasChoices("is_top_astro", "isTopAstro")
    )
    availability: bool | None = None
    flow_multiplier: float | None = Field(None, gt=0)
    curr_connection_id: str | None = Field(
        None, validation_alias=AliasChoices("curr_connection_id", "curr_connections")
    )


class BatchAstrologersRequest(BaseModel):
    astrologers: list[CreateAstrologerRequest] = Field(..., min_length=1)
