"""
Translation of service and store failures into HTTP responses.
"""

from fastapi import HTTPException, status

from app.db.helpers import DatabaseError
from app.infrastructure.observability.logging import get_logger
from app.services.errors import (
    BookingServiceError,
    EntityConflictError,
    EntityNotFoundError,
    EntityValidationError,
    InvalidCredentialsError,
)

logger = get_logger(__name__)

_STATUS_BY_ERROR: list[tuple[type[BookingServiceError], int]] = [
    (EntityNotFoundError, status.HTTP_404_NOT_FOUND),
    (EntityValidationError, status.HTTP_400_BAD_REQUEST),
    (EntityConflictError, status.HTTP_400_BAD_REQUEST),
    (InvalidCredentialsError, status.HTTP_401_UNAUTHORIZED),
]


def to_http_error(error: Exception, failure_message: str) -> HTTPException:
    """
    Map a failure raised below the route to the HTTPException to raise.

    Args:
        error: Service or store exception
        failure_message: Detail used when the store failed (500)
    """
    if isinstance(error, BookingServiceError):
        for error_type, status_code in _STATUS_BY_ERROR:
            if isinstance(error, error_type):
                return HTTPException(status_code=status_code, detail=str(error))

    if isinstance(error, DatabaseError):
        logger.error(
            failure_message,
            operation=error.operation,
            recoverable=error.recoverable,
            error=str(error),
        )
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{failure_message}: {error}",
        )

    raise error
