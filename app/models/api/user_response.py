# app/models/api/user_response.py
from pydantic import BaseModel, Field

from app.models.domain.user_domain import User


class AuthResponse(BaseModel):
    """Response for register and login."""

    message: str
    token: str = Field(..., description="Signed bearer token")
    user: User


class UserMutationResponse(BaseModel):
    message: str
    user: User


class BatchUsersResponse(BaseModel):
    message: str
    success_count: int
    users: list[User]
    failed: list[str] = Field(default_factory=list, description="One reason per rejected item")
