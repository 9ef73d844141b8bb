from datetime import datetime
from typing import Literal

from pydantic import BaseModel

UserRole = Literal["user", "admin"]


class AssignedAstrologer(BaseModel):
    """Projection of the astrologer a user is assigned to."""

    id: str
    name: str
    email: str
    specialization: str | None = None
    is_top_astro: bool = False
    availability: bool = True


class User(BaseModel):
    """Public user record. The password credential never leaves the repository."""

    id: str
    name: str
    email: str
    role: UserRole = "user"
    assigned_astrologer: AssignedAstrologer | None = None
    created_at: datetime
    updated_at: datetime
