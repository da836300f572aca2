"""
Booking store interface: the boundary to the transactional store.

The store owns persistence and exposes two server-side conflict predicates:
  - is_slot_available_for_room: room-scoped (current)
  - is_slot_available: room-agnostic (kept for older deployments)

Implementations:
  - SqlBookingStore: PostgreSQL through SQLAlchemy; predicates are SQL functions
  - InMemoryBookingStore: single-process store for development and tests

Implementations raise their native errors; callers classify them.
"""

from abc import ABC, abstractmethod
from datetime import date, time
from typing import Optional, Sequence

from app.schemas.booking import BookingRecord, BookingWithEventDetails
from app.schemas.event import EventRecord
from app.schemas.room import RoomRecord

# Event columns callers may set on insert or update
EVENT_MUTABLE_FIELDS = ("room_id", "event_name", "poc_name", "phone_number", "start_time", "end_time", "color")


class BookingStore(ABC):

    # --- Conflict predicates -------------------------------------------------

    @abstractmethod
    async def is_slot_available_for_room(
        self,
        room_id: str,
        booking_date: date,
        start_time: time,
        end_time: time,
        exclude_event_id: Optional[int] = None,
    ) -> bool:
        """Room-scoped server-side predicate."""

    @abstractmethod
    async def is_slot_available(
        self,
        booking_date: date,
        start_time: time,
        end_time: time,
        exclude_event_id: Optional[int] = None,
    ) -> bool:
        """Legacy room-agnostic server-side predicate."""

    # --- Reads ---------------------------------------------------------------

    @abstractmethod
    async def list_rooms(self, active_only: bool = True) -> list[RoomRecord]:
        pass

    @abstractmethod
    async def get_room(self, room_id: str) -> Optional[RoomRecord]:
        pass

    @abstractmethod
    async def get_event(self, event_id: int) -> Optional[EventRecord]:
        pass

    @abstractmethod
    async def get_booking(self, booking_id: int) -> Optional[BookingWithEventDetails]:
        pass

    @abstractmethod
    async def list_event_bookings(self, event_id: int) -> list[BookingRecord]:
        pass

    @abstractmethod
    async def list_bookings_for_date(self, booking_date: date) -> list[BookingWithEventDetails]:
        """All bookings on a date across rooms, ordered by start time."""

    @abstractmethod
    async def list_bookings_between(
        self,
        first_date: date,
        last_date: date,
        room_id: Optional[str] = None,
    ) -> list[BookingWithEventDetails]:
        """Bookings with first_date <= date <= last_date, ordered by date then start time."""

    # --- Writes --------------------------------------------------------------

    @abstractmethod
    async def ensure_rooms(self, rooms: Sequence[RoomRecord]) -> int:
        """Insert any missing reference rooms, returns the number inserted."""

    @abstractmethod
    async def insert_event(self, data: dict) -> EventRecord:
        pass

    @abstractmethod
    async def insert_bookings(self, event_id: int, dates: Sequence[date]) -> list[BookingRecord]:
        """Insert one booking per date in a single statement/transaction."""

    @abstractmethod
    async def update_event(self, event_id: int, changes: dict) -> Optional[EventRecord]:
        """Returns None when the event does not exist."""

    @abstractmethod
    async def update_booking_date(self, booking_id: int, new_date: date) -> Optional[BookingRecord]:
        """Returns None when the booking does not exist."""

    @abstractmethod
    async def delete_event_bookings(self, event_id: int) -> int:
        """Delete all bookings of an event, returns the number deleted."""

    @abstractmethod
    async def delete_event(self, event_id: int) -> bool:
        pass

    @abstractmethod
    async def delete_booking(self, booking_id: int) -> bool:
        pass

    async def close(self) -> None:
        """Release connections. No-op by default."""
