"""
users.py
--------
Purpose:
    User accounts: registration (single and batch), login, and the cached
    read / update / delete endpoints.

Usage:
    1. POST /api/v1/users/generate  - Register many users, per-item outcome
    2. POST /api/v1/users/register  - Register one user, returns a bearer token
    3. POST /api/v1/users/login     - Exchange credentials for a bearer token
    4. GET  /api/v1/users/all       - List users (cached)
    5. GET/PUT/DELETE /api/v1/users/{user_id} - Owner or admin only
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.tokens import issue_token
from app.auth.verify import auth_dependency, require_self_or_admin
from app.db.helpers import DatabaseError
from app.infrastructure.observability.logging import get_logger
from app.models.api.common import MessageResponse
from app.models.api.user_request import (
    BatchUsersRequest,
    LoginRequest,
    RegisterUserRequest,
    UpdateUserRequest,
)
from app.models.api.user_response import AuthResponse, BatchUsersResponse, UserMutationResponse
from app.models.domain.user_domain import User
from app.routes.errors import to_http_error
from app.services.errors import BookingServiceError, EntityNotFoundError
from app.services.user_service import UserService, get_user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])
logger = get_logger(__name__)


@router.post("/generate", response_model=BatchUsersResponse, status_code=status.HTTP_201_CREATED)
async def generate_users(
    request: BatchUsersRequest, service: UserService = Depends(get_user_service)
):
    try:
        outcome = await service.generate_users(request.users)
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Error generating users") from e

    return BatchUsersResponse(
        message=f"{outcome.success_count} users registered successfully",
        success_count=outcome.success_count,
        users=outcome.created,
        failed=[failure.reason for failure in outcome.failures],
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterUserRequest, service: UserService = Depends(get_user_service)):
    try:
        user = await service.register_user(request)
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Error registering user") from e

    return AuthResponse(message="User registered successfully", token=issue_token(user), user=user)


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, service: UserService = Depends(get_user_service)):
    try:
        user = await service.authenticate(request.email, request.password)
    except EntityNotFoundError as e:
        # Unknown email is a 404 but must not reveal which part was wrong
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Invalid credentials"
        ) from e
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Error logging in") from e

    logger.info("User logged in", user_id=user.id)
    return AuthResponse(message="Login successful", token=issue_token(user), user=user)


@router.get("/all", response_model=list[User])
async def list_users(service: UserService = Depends(get_user_service)):
    try:
        return await service.list_users()
    except DatabaseError as e:
        raise to_http_error(e, "Error fetching users") from e


@router.get("/{user_id}", response_model=User)
async def get_user(
    user_id: str,
    claims: dict = Depends(auth_dependency),
    service: UserService = Depends(get_user_service),
):
    require_self_or_admin(claims, user_id)
    try:
        return await service.get_user(user_id)
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Error fetching user") from e


@router.put("/{user_id}", response_model=UserMutationResponse)
async def update_user(
    user_id: str,
    request: UpdateUserRequest,
    claims: dict = Depends(auth_dependency),
    service: UserService = Depends(get_user_service),
):
    require_self_or_admin(claims, user_id)
    changes = request.changes()
    if "role" in changes and claims.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can change roles"
        )

    try:
        user = await service.update_user(user_id, changes)
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Error updating user") from e

    return UserMutationResponse(message="User updated successfully", user=user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    claims: dict = Depends(auth_dependency),
    service: UserService = Depends(get_user_service),
):
    require_self_or_admin(claims, user_id)
    try:
        await service.delete_user(user_id)
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Error deleting user") from e

    return MessageResponse(message="User deleted successfully")
