"""
Pytest fixtures for the in-memory store, services, and HTTP client.

API tests run against the real FastAPI app with the store dependency
overridden by an InMemoryBookingStore, so no database or Redis is needed.
"""

import os

# Must be set before app modules read settings
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("STORE_BACKEND", "memory")

from datetime import date, time, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.api.dependencies import get_retry_policy, get_store
from app.core.retry import RetryPolicy
from app.infrastructure.memory_store import InMemoryBookingStore
from app.services.availability_service import AvailabilityChecker
from app.services.booking_service import BookingService, EventDetails
from app.services.room_service import DEFAULT_ROOMS, RoomService

# No real waiting between retry attempts
FAST_RETRY = RetryPolicy(max_attempts=3, base_delay_ms=0)


@pytest.fixture
def store() -> InMemoryBookingStore:
    return InMemoryBookingStore(DEFAULT_ROOMS)


@pytest.fixture
def fast_retry() -> RetryPolicy:
    return FAST_RETRY


@pytest.fixture
def booking_service(store: InMemoryBookingStore, fast_retry: RetryPolicy) -> BookingService:
    checker = AvailabilityChecker(store, fast_retry)
    return BookingService(store, checker, RoomService(store, fast_retry), fast_retry)


@pytest.fixture
def details():
    """Factory for event details with sensible defaults."""

    def make(room_id="1-21", start="09:00", end="10:00", name="Team Meeting", **overrides) -> EventDetails:
        return EventDetails(
            room_id=room_id,
            start_time=time.fromisoformat(start),
            end_time=time.fromisoformat(end),
            event_name=name,
            poc_name=overrides.pop("poc_name", "Alice Tan"),
            phone_number=overrides.pop("phone_number", "91234567"),
            color=overrides.pop("color", None),
        )

    return make


@pytest.fixture
def future_day() -> date:
    """A date safely in the future for request-level validation."""
    return date.today() + timedelta(days=30)


@pytest_asyncio.fixture(scope="function")
async def client(store: InMemoryBookingStore) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the store dependency with the test store."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_retry_policy] = lambda: FAST_RETRY

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def booking_json(future_day: date):
    """Factory for POST /bookings/ request bodies."""

    def make(**overrides) -> dict:
        body = {
            "room_id": "1-21",
            "date": future_day.isoformat(),
            "start_time": "09:00",
            "end_time": "10:00",
            "event_name": "Team Meeting",
            "poc_name": "Alice Tan",
            "phone_number": "9123 4567",
        }
        body.update(overrides)
        return body

    return make
