"""
Astrologer profile endpoints under /api/v1/astrologers.

The list endpoint accepts ``isTopAstro=true|false``; each value is cached
under its own key.
"""

from fastapi import APIRouter, Depends, Query, status

from app.db.helpers import DatabaseError
from app.models.api.astrologer_request import (
    BatchAstrologersRequest,
    CreateAstrologerRequest,
    UpdateAstrologerRequest,
)
from app.models.api.astrologer_response import AstrologerDeleteResponse, BatchAstrologersResponse
from app.models.domain.astrologer_domain import Astrologer
from app.routes.errors import to_http_error
from app.services.astrologer_service import AstrologerService, get_astrologer_service
from app.services.errors import BookingServiceError

router = APIRouter(prefix="/api/v1/astrologers", tags=["astrologers"])


@router.post("/create", response_model=Astrologer, status_code=status.HTTP_201_CREATED)
async def create_astrologer(
    request: CreateAstrologerRequest,
    service: AstrologerService = Depends(get_astrologer_service),
):
    try:
        return await service.create_astrologer(request)
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Failed to create astrologer") from e


@router.post(
    "/generate", response_model=BatchAstrologersResponse, status_code=status.HTTP_201_CREATED
)
async def generate_astrologers(
    request: BatchAstrologersRequest,
    service: AstrologerService = Depends(get_astrologer_service),
):
    try:
        outcome = await service.generate_astrologers(request.astrologers)
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Error generating astrologers") from e

    return BatchAstrologersResponse(
        message=f"{outcome.success_count} astrologers registered successfully",
        success_count=outcome.success_count,
        astrologers=outcome.created,
        failed=[failure.reason for failure in outcome.failures],
    )


@router.get("/all", response_model=list[Astrologer])
async def list_astrologers(
    is_top_astro: bool | None = Query(None, alias="isTopAstro"),
    service: AstrologerService = Depends(get_astrologer_service),
):
    try:
        return await service.list_astrologers(is_top_astro)
    except DatabaseError as e:
        raise to_http_error(e, "Failed to fetch astrologers") from e


@router.get("/{astrologer_id}", response_model=Astrologer)
async def get_astrologer(
    astrologer_id: str, service: AstrologerService = Depends(get_astrologer_service)
):
    try:
        return await service.get_astrologer(astrologer_id)
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Error retrieving astrologer") from e


@router.put("/{astrologer_id}", response_model=Astrologer)
async def update_astrologer(
    astrologer_id: str,
    request: UpdateAstrologerRequest,
    service: AstrologerService = Depends(get_astrologer_service),
):
    try:
        return await service.update_astrologer(astrologer_id, request.changes())
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Failed to update astrologer") from e


@router.delete("/{astrologer_id}", response_model=AstrologerDeleteResponse)
async def delete_astrologer(
    astrologer_id: str, service: AstrologerService = Depends(get_astrologer_service)
):
    try:
        astrologer = await service.delete_astrologer(astrologer_id)
    except (BookingServiceError, DatabaseError) as e:
        raise to_http_error(e, "Failed to delete astrologer") from e

    return AstrologerDeleteResponse(
        message="Astrologer deleted successfully", astrologer=astrologer
    )
