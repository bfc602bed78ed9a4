"""
Error taxonomy for the booking core.

Every error carries a stable ``kind`` and a human-readable message so the
HTTP boundary can map them consistently:

    NotFoundError         -> 404
    InvalidInputError     -> 400
    ConflictError         -> 409
    ForbiddenError        -> 403
    InternalFailureError  -> 500
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from car_rental.core.logging import get_logger

logger = get_logger(__name__)


class BookingError(Exception):
    kind = "booking_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(kind={self.kind}, message={self.message!r})>"


class NotFoundError(BookingError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidInputError(BookingError):
    kind = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(BookingError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class ForbiddenError(BookingError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class InternalFailureError(BookingError):
    kind = "internal_failure"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Render a core error as ``{"error": kind, "detail": message}``."""
    if isinstance(exc, InternalFailureError):
        logger.error("request_internal_failure", error=exc.message)
    else:
        logger.info("request_rejected", kind=exc.kind, detail=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.message},
    )
