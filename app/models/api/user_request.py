# app/models/api/user_request.py
from typing import ClassVar

from pydantic import AliasChoices, BaseModel, Field, field_validator

from app.models.api.common import PartialUpdateRequest
from app.models.domain.user_domain import UserRole

PASSWORD_MAX_LENGTH = 72
# bcrypt rejects longer input, and multibyte characters count several times
PASSWORD_MAX_BYTES = 72


def check_password_bytes(value: str | None) -> str | None:
    if value is not None and len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"password must be at most {PASSWORD_MAX_BYTES} bytes in UTF-8")
    return value


class RegisterUserRequest(BaseModel):
    """Single user registration, also the record shape of a batch item."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=PASSWORD_MAX_LENGTH)
    role: UserRole = "user"

    @field_validator("password")
    @classmethod
    def validate_password_bytes(cls, v: str) -> str:
        return check_password_bytes(v)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LENGTH)


class UpdateUserRequest(PartialUpdateRequest):
    NULLABLE_FIELDS: ClassVar[frozenset[str]] = frozenset({"assigned_astrologer_id"})

    name: str | None = Field(None, min_length=1, max_length=100)
    email: str | None = Field(None, min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str | None = Field(None, min_length=6, max_length=PASSWORD_MAX_LENGTH)
    role: UserRole | None = None
    assigned_astrologer_id: str | None = Field(
        None, validation_alias=AliasChoices("assigned_astrologer_id", "assignedAstrologer")
    )

    @field_validator("password")
    @classmethod
    def validate_password_bytes(cls, v: str | None) -> str | None:
        return check_password_bytes(v)


class BatchUsersRequest(BaseModel):
    users: list[RegisterUserRequest] = Field(..., min_length=1)
