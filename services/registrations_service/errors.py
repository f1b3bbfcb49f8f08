"""Error hierarchy for the registrations core.

Every error carries a stable ``code`` and the HTTP status the API layer maps
it to. Messages are safe to show to members.
"""

from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from libs.common.logging import get_logger

logger = get_logger(__name__)


class BookingError(Exception):
    """Base exception for every registration/ledger failure."""

    code = "BOOKING_ERROR"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self) -> dict:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = {k: str(v) for k, v in self.details.items()}
        return {"error": body, "detail": self.message}


# ─── 404 ────────────────────────────────────────────────────────


class NotFoundError(BookingError):
    code = "NOT_FOUND"
    http_status = status.HTTP_404_NOT_FOUND


class CourseUnavailableError(NotFoundError):
    """Course missing, inactive or not in the scheduled state."""

    code = "COURSE_UNAVAILABLE"


# ─── 409 ────────────────────────────────────────────────────────


class ConflictError(BookingError):
    code = "CONFLICT"
    http_status = status.HTTP_409_CONFLICT


class AlreadyRegisteredError(ConflictError):
    code = "ALREADY_REGISTERED"


class AlreadyCheckedInError(ConflictError):
    code = "ALREADY_CHECKED_IN"


class InvalidTransitionError(ConflictError):
    code = "INVALID_TRANSITION"


class ScheduleOverlapError(ConflictError):
    code = "SCHEDULE_OVERLAP"


# ─── 400 business rules ─────────────────────────────────────────


class CourseFullError(BookingError):
    code = "COURSE_FULL"


class InsufficientSessionsError(BookingError):
    code = "INSUFFICIENT_SESSIONS"


class SessionCapExceededError(BookingError):
    code = "SESSION_CAP_EXCEEDED"


class AlreadyStartedError(BookingError):
    code = "ALREADY_STARTED"


# ─── 403 / 500 ──────────────────────────────────────────────────


class ForbiddenError(BookingError):
    code = "FORBIDDEN"
    http_status = status.HTTP_403_FORBIDDEN


class InternalError(BookingError):
    code = "INTERNAL_ERROR"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Storage failure", *, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


def register_error_handlers(app: FastAPI) -> None:
    """Map ``BookingError`` subclasses to JSON responses."""

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError):
        if exc.http_status >= 500:
            logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
        else:
            logger.info("%s on %s: %s", exc.code, request.url.path, exc.message)
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())
