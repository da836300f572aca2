"""
FastAPI dependencies wiring the store and services per request.
"""

from typing import Optional

from fastapi import Depends, Request

from app.core.config import get_settings
from app.core.logging import LogBuffer
from app.core.retry import RetryPolicy
from app.infrastructure.memory_store import InMemoryBookingStore
from app.services.availability_service import AvailabilityChecker
from app.services.booking_service import BookingService
from app.services.interfaces.store import BookingStore
from app.services.room_service import DEFAULT_ROOMS, RoomService


def create_store(backend: str) -> BookingStore:
    """Build the store for STORE_BACKEND ("sql" or "memory")."""
    if backend == "memory":
        return InMemoryBookingStore(DEFAULT_ROOMS)
    if backend == "sql":
        from app.db.session import SessionLocal, engine
        from app.infrastructure.sql_store import SqlBookingStore

        return SqlBookingStore(SessionLocal, engine)
    raise ValueError(f"Unknown STORE_BACKEND '{backend}'")


def get_retry_policy() -> RetryPolicy:
    settings = get_settings()
    return RetryPolicy(settings.RETRY_MAX_ATTEMPTS, settings.RETRY_BASE_DELAY_MS)


def get_store(request: Request) -> BookingStore:
    """The application-wide store, created on first use if lifespan did not run."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        store = create_store(get_settings().STORE_BACKEND)
        request.app.state.store = store
    return store


def get_room_service(
    store: BookingStore = Depends(get_store),
    retry_policy: RetryPolicy = Depends(get_retry_policy),
) -> RoomService:
    return RoomService(store, retry_policy)


def get_booking_service(
    store: BookingStore = Depends(get_store),
    retry_policy: RetryPolicy = Depends(get_retry_policy),
) -> BookingService:
    checker = AvailabilityChecker(store, retry_policy)
    return BookingService(store, checker, RoomService(store, retry_policy), retry_policy)


def get_log_buffer(request: Request) -> Optional[LogBuffer]:
    return getattr(request.app.state, "log_buffer", None)
