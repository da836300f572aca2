"""
Error taxonomy and classification for the booking core.

Every failure that leaves a service is a BookingError carrying:
  - kind: machine-readable ErrorKind (closed set)
  - message: technical message for logs
  - user_message: human-readable message for the UI
  - retryable: derived from the kind, consumed by the retry wrapper
  - source: the component the failure was observed in

classify_error() turns raw exceptions (SQLAlchemy, asyncio, OS, store errors
carrying status codes) into that taxonomy. Already-classified errors pass
through untouched.
"""

import asyncio
import re
from datetime import date
from enum import Enum
from typing import Iterable, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    NoResultFound,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError


class ErrorKind(str, Enum):
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    API_ERROR = "API_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    BOOKING_CONFLICT = "BOOKING_CONFLICT"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE_KINDS

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


class ErrorSource(str, Enum):
    STORE = "store"
    AVAILABILITY = "availability"
    BOOKING = "booking"
    RETRY = "retry"
    VALIDATION = "validation"
    API = "api"
    UNKNOWN = "unknown"


_RETRYABLE_KINDS = frozenset({
    ErrorKind.NETWORK_ERROR,
    ErrorKind.TIMEOUT_ERROR,
    ErrorKind.DATABASE_ERROR,
    ErrorKind.API_ERROR,
    ErrorKind.UNKNOWN_ERROR,
})

_HTTP_STATUS = {
    ErrorKind.NETWORK_ERROR: 503,
    ErrorKind.TIMEOUT_ERROR: 504,
    ErrorKind.DATABASE_ERROR: 503,
    ErrorKind.API_ERROR: 503,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION_ERROR: 422,
    ErrorKind.BOOKING_CONFLICT: 409,
    ErrorKind.BOOKING_NOT_FOUND: 404,
    ErrorKind.UNKNOWN_ERROR: 500,
}

USER_MESSAGES = {
    ErrorKind.NETWORK_ERROR: "Unable to connect to the server. Please check your connection and try again.",
    ErrorKind.TIMEOUT_ERROR: "The request took too long to complete. Please try again.",
    ErrorKind.DATABASE_ERROR: "A database error occurred. Please try again later.",
    ErrorKind.API_ERROR: "A server error occurred. Please try again later.",
    ErrorKind.UNAUTHORIZED: "Please log in to continue.",
    ErrorKind.FORBIDDEN: "You do not have permission to perform this action.",
    ErrorKind.NOT_FOUND: "The requested item could not be found.",
    ErrorKind.CONFLICT: "There was a conflict with your request. Please refresh and try again.",
    ErrorKind.VALIDATION_ERROR: "Please check your input and try again.",
    ErrorKind.BOOKING_CONFLICT: "This time slot is already booked. Please choose a different time.",
    ErrorKind.BOOKING_NOT_FOUND: (
        "The requested booking could not be found. It may have been deleted or does not exist."
    ),
    ErrorKind.UNKNOWN_ERROR: "An unexpected error occurred. Please try again.",
}


class BookingError(Exception):
    """Base class for every classified error raised by the booking core."""

    default_kind = ErrorKind.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        *,
        kind: Optional[ErrorKind] = None,
        user_message: Optional[str] = None,
        source: ErrorSource = ErrorSource.UNKNOWN,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.kind = kind or self.default_kind
        self.message = message
        self.user_message = user_message or USER_MESSAGES[self.kind]
        self.source = source
        self.cause = cause

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def to_dict(self) -> dict:
        return {
            "code": self.kind.value,
            "message": self.user_message,
            "retryable": self.retryable,
            "source": self.source.value,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(kind={self.kind.value}, message={self.message!r})>"


class BookingConflictError(BookingError):
    default_kind = ErrorKind.BOOKING_CONFLICT

    def __init__(
        self,
        dates: Iterable = (),
        *,
        message: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
        source: ErrorSource = ErrorSource.BOOKING,
        cause: Optional[BaseException] = None,
    ):
        self.dates = [d.isoformat() if isinstance(d, date) else str(d) for d in dates]
        user_message = None
        if self.dates:
            dates_list = ", ".join(self.dates)
            message = message or f"Booking conflict detected for dates: {dates_list}"
            user_message = (
                f"The selected dates ({dates_list}) are already booked. "
                "Please choose different dates."
            )
        super().__init__(
            message or "Booking conflict detected",
            kind=kind,
            user_message=user_message,
            source=source,
            cause=cause,
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["dates"] = self.dates
        return data


class BookingNotFoundError(BookingError):
    default_kind = ErrorKind.BOOKING_NOT_FOUND

    def __init__(
        self,
        entity: str = "Booking",
        entity_id=None,
        *,
        source: ErrorSource = ErrorSource.BOOKING,
        cause: Optional[BaseException] = None,
    ):
        self.entity = entity
        self.entity_id = entity_id
        message = f"{entity} with ID {entity_id} not found" if entity_id is not None else f"{entity} not found"
        user_message = None
        if entity != "Booking":
            user_message = f"The requested {entity.lower()} could not be found. It may have been deleted or does not exist."
        super().__init__(message, user_message=user_message, source=source, cause=cause)


class ValidationError(BookingError):
    default_kind = ErrorKind.VALIDATION_ERROR

    def __init__(
        self,
        field: str,
        message: str,
        *,
        source: ErrorSource = ErrorSource.VALIDATION,
        cause: Optional[BaseException] = None,
    ):
        self.field = field
        super().__init__(
            f"Validation failed for {field}: {message}",
            user_message=f"Please check your {field.replace('_', ' ')}: {message}.",
            source=source,
            cause=cause,
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["field"] = self.field
        return data


class InvalidRangeError(ValidationError):
    """Raised when a time range does not satisfy start < end."""

    def __init__(self, start, end):
        self.start = start
        self.end = end
        super().__init__("end_time", f"end time {end} must be after start time {start}")


# Markers the store emits for uniqueness / exclusion violations
_CONFLICT_MARKERS = ("23505", "23p01", "duplicate key", "unique constraint", "exclusion constraint", "overlaps existing booking")
_NO_ROWS_MARKERS = ("pgrst116", "no rows found", "no row was found")
_NETWORK_MARKERS = ("network", "connection refused", "connection reset", "could not connect", "fetch failed")
_TIMEOUT_MARKERS = ("timeout", "timed out")
_STATUS_PATTERN = re.compile(r"\b(401|403|404|409|5\d\d)\b")


def _status_code(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def _from_status(status_code: int, exc: BaseException, source: ErrorSource) -> Optional[BookingError]:
    text = str(exc)
    if status_code == 401:
        return BookingError("Unauthorized access", kind=ErrorKind.UNAUTHORIZED, source=source, cause=exc)
    if status_code == 403:
        return BookingError("Access forbidden", kind=ErrorKind.FORBIDDEN, source=source, cause=exc)
    if status_code == 404:
        return BookingError(f"Resource not found: {text}", kind=ErrorKind.NOT_FOUND, source=source, cause=exc)
    if status_code == 409:
        return BookingConflictError(message=f"Conflict detected: {text}", kind=ErrorKind.CONFLICT, source=source, cause=exc)
    if 500 <= status_code < 600:
        return BookingError(f"API operation failed ({status_code}): {text}", kind=ErrorKind.API_ERROR, source=source, cause=exc)
    return None


def classify_error(exc: BaseException, source: ErrorSource = ErrorSource.UNKNOWN) -> BookingError:
    """Map a raw failure onto the closed error taxonomy."""
    if isinstance(exc, BookingError):
        return exc

    text = str(exc).lower()

    if isinstance(exc, PydanticValidationError):
        errors = exc.errors()
        field = ".".join(str(part) for part in errors[0].get("loc", ())) if errors else "input"
        reason = errors[0].get("msg", "invalid value") if errors else "invalid value"
        return ValidationError(field or "input", reason, source=source, cause=exc)

    # TimeoutError subclasses OSError, so it is checked first
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, PoolTimeoutError)):
        return BookingError("Request timed out", kind=ErrorKind.TIMEOUT_ERROR, source=source, cause=exc)

    if isinstance(exc, NoResultFound) or any(marker in text for marker in _NO_ROWS_MARKERS):
        return BookingNotFoundError(source=source, cause=exc)

    if isinstance(exc, IntegrityError) or any(marker in text for marker in _CONFLICT_MARKERS):
        if any(marker in text for marker in _CONFLICT_MARKERS):
            return BookingConflictError(message="Booking conflict detected", source=source, cause=exc)
        return BookingError(
            f"Database constraint violated: {exc}", kind=ErrorKind.DATABASE_ERROR, source=source, cause=exc
        )

    if isinstance(exc, InterfaceError) or (isinstance(exc, DBAPIError) and exc.connection_invalidated):
        return BookingError(
            f"Database connection failed: {exc}", kind=ErrorKind.NETWORK_ERROR, source=source, cause=exc
        )

    status_code = _status_code(exc)
    if status_code is not None:
        classified = _from_status(status_code, exc, source)
        if classified is not None:
            return classified

    if isinstance(exc, SQLAlchemyError):
        return BookingError(
            f"Database operation failed: {exc}", kind=ErrorKind.DATABASE_ERROR, source=source, cause=exc
        )

    if any(marker in text for marker in _TIMEOUT_MARKERS):
        return BookingError("Request timed out", kind=ErrorKind.TIMEOUT_ERROR, source=source, cause=exc)

    if isinstance(exc, (ConnectionError, OSError)) or any(marker in text for marker in _NETWORK_MARKERS):
        return BookingError("Network request failed", kind=ErrorKind.NETWORK_ERROR, source=source, cause=exc)

    match = _STATUS_PATTERN.search(text)
    if match:
        classified = _from_status(int(match.group(1)), exc, source)
        if classified is not None:
            return classified

    return BookingError(str(exc) or type(exc).__name__, kind=ErrorKind.UNKNOWN_ERROR, source=source, cause=exc)
