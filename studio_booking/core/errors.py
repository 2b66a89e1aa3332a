"""
Domain errors and their mapping onto the JSON response envelope.
"""
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from studio_booking.core.logging import get_logger

logger = get_logger(__name__)


class ErrorSeverity(Enum):
    LOW = "low"           # validation errors, not found, conflicts
    MEDIUM = "medium"     # provider failures, timeouts
    HIGH = "high"         # unhandled failures, database unreachable
    CRITICAL = "critical"


class BookingError(Exception):
    """Base class for errors that map to a client-visible response."""

    status_code = 500
    severity = ErrorSeverity.MEDIUM

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class BookingValidationError(BookingError):
    status_code = 400
    severity = ErrorSeverity.LOW


class AdminAuthError(BookingError):
    status_code = 401
    severity = ErrorSeverity.MEDIUM


class NotFoundError(BookingError):
    status_code = 404
    severity = ErrorSeverity.LOW


class ConflictError(BookingError):
    status_code = 409
    severity = ErrorSeverity.LOW


class SlotUnavailableError(ConflictError):
    """The requested window overlaps a non-cancelled appointment."""


class NotificationDeliveryError(BookingError):
    """The mandatory confirmation email could not be sent.

    The appointment is already persisted when this is raised; callers should
    retry the notification, not the booking.
    """

    status_code = 500
    severity = ErrorSeverity.HIGH

    def __init__(self, message: str, *, appointment_id: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.appointment_id = appointment_id


class ProviderError(Exception):
    """A downstream email/calendar/contacts provider refused or failed a call."""

    def __init__(self, message: str, *, status_code: Optional[int] = None,
                 code: Optional[str] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.payload = payload


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None,
              severity: Optional[ErrorSeverity] = None) -> None:
    """Log an error with a severity; low-severity errors stay at info level."""
    context = context or {}
    if severity is None:
        severity = getattr(error, "severity", ErrorSeverity.HIGH)

    fields = {
        "error": str(error),
        "error_type": type(error).__name__,
        "severity": severity.value,
        **context,
    }
    if severity is ErrorSeverity.LOW:
        logger.info("request_rejected", **fields)
    elif severity is ErrorSeverity.MEDIUM:
        logger.warning("request_failed", **fields)
    else:
        logger.error("request_failed", exc_info=error, **fields)


def error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "error": message}
    body.update(extra)
    return JSONResponse(body, status_code=status_code)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BookingError)
    async def _booking_error(request: Request, exc: BookingError):
        log_error(exc, {"endpoint": request.url.path, **exc.details})
        extra = {"details": exc.details} if exc.details else {}
        return error_response(exc.status_code, exc.message, **extra)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        log_error(exc, {"endpoint": request.url.path}, ErrorSeverity.LOW)
        return error_response(400, "Paramètres invalides", details={"errors": jsonable_encoder(exc.errors())})

    @app.exception_handler(HTTPException)
    async def _http_exception(request: Request, exc: HTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        log_error(exc, {"endpoint": request.url.path}, ErrorSeverity.HIGH)
        return error_response(500, "Erreur serveur interne")
