"""
Exception handlers that render every failure in the same JSON envelope:

    {"success": false, "message": "...", "error": {"code": ..., "retryable": ..., ...}}
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.errors import BookingError, ErrorKind, ErrorSource, USER_MESSAGES
from app.core.logging import get_logger

logger = get_logger(__name__)


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Handle every classified error raised by the booking core."""
    status_code = exc.kind.http_status
    log = logger.error if status_code >= 500 else logger.info
    log("request_rejected", kind=exc.kind.value, status_code=status_code, error=exc.message)
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": exc.user_message,
            "error": exc.to_dict(),
        },
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Convert FastAPI's validation error list into the standard envelope."""
    details = []
    for error in exc.errors():
        loc = error.get("loc", ())
        field = ".".join(str(part) for part in loc if part not in ("body", "query", "path")) or "input"
        details.append({"field": field, "message": error.get("msg", "Invalid value")})

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": USER_MESSAGES[ErrorKind.VALIDATION_ERROR],
            "error": {
                "code": ErrorKind.VALIDATION_ERROR.value,
                "retryable": False,
                "source": ErrorSource.VALIDATION.value,
                "details": details,
            },
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all: log the traceback, return a safe 500."""
    logger.exception("unhandled_exception", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": USER_MESSAGES[ErrorKind.UNKNOWN_ERROR],
            "error": {
                "code": ErrorKind.UNKNOWN_ERROR.value,
                "retryable": False,
                "source": ErrorSource.API.value,
            },
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
