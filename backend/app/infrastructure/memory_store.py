"""
In-memory booking store.

Single-process stand-in for the PostgreSQL store, selected with
STORE_BACKEND=memory and used by the test-suite. It mirrors the SQL store's
behaviour, including its failure modes:
  - the conflict predicates can be switched off (predicates_enabled=False),
    in which case they fail like an unmigrated database function
  - uniqueness of (event_id, date) and the room/date overlap guard raise
    the same error codes the PostgreSQL constraints and triggers do
  - inject_failure() makes the next N calls of a method raise, to exercise
    retry and classification paths
"""

import asyncio
import itertools
from collections import defaultdict
from datetime import date, datetime, time, timezone
from typing import Optional, Sequence

from app.core.logging import get_logger
from app.core.time_range import TimeRange
from app.schemas.booking import BookingRecord, BookingWithEventDetails
from app.schemas.event import EventRecord
from app.schemas.room import RoomRecord
from app.services.interfaces.store import EVENT_MUTABLE_FIELDS, BookingStore

logger = get_logger(__name__)


class StoreError(Exception):
    """Raw store failure carrying a SQLSTATE-like code and optional HTTP-like status."""

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}" if self.code else self.message


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryBookingStore(BookingStore):

    def __init__(
        self,
        rooms: Sequence[RoomRecord] = (),
        *,
        predicates_enabled: bool = True,
        enforce_overlap: bool = True,
    ):
        self.predicates_enabled = predicates_enabled
        self.enforce_overlap = enforce_overlap
        self._rooms: dict[str, RoomRecord] = {r.id: r for r in rooms}
        self._events: dict[int, EventRecord] = {}
        self._bookings: dict[int, BookingRecord] = {}
        self._event_ids = itertools.count(1)
        self._booking_ids = itertools.count(1)
        self._lock = asyncio.Lock()
        self._failures: dict[str, list[BaseException]] = defaultdict(list)
        self.calls: dict[str, int] = defaultdict(int)

    # --- Fault injection -----------------------------------------------------

    def inject_failure(self, method: str, exc: BaseException, times: int = 1) -> None:
        self._failures[method].extend([exc] * times)

    def _enter(self, method: str) -> None:
        self.calls[method] += 1
        pending = self._failures.get(method)
        if pending:
            raise pending.pop(0)

    # --- Helpers -------------------------------------------------------------

    def _details(self, booking: BookingRecord) -> BookingWithEventDetails:
        event = self._events[booking.event_id]
        room = self._rooms.get(event.room_id)
        return BookingWithEventDetails(
            id=booking.id,
            event_id=event.id,
            date=booking.date,
            room_id=event.room_id,
            room_name=room.name if room else event.room_id,
            event_name=event.event_name,
            poc_name=event.poc_name,
            phone_number=event.phone_number,
            start_time=event.start_time,
            end_time=event.end_time,
            color=event.color,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )

    def _slot_taken(
        self,
        room_id: Optional[str],
        booking_date: date,
        start_time: time,
        end_time: time,
        exclude_event_id: Optional[int],
    ) -> bool:
        requested = TimeRange(booking_date, start_time, end_time)
        for booking in self._bookings.values():
            event = self._events[booking.event_id]
            if exclude_event_id is not None and event.id == exclude_event_id:
                continue
            if room_id is not None and event.room_id != room_id:
                continue
            if requested.overlaps(TimeRange(booking.date, event.start_time, event.end_time)):
                return True
        return False

    def _guard_overlap(self, event: EventRecord, dates: Sequence[date]) -> None:
        if not self.enforce_overlap:
            return
        for d in dates:
            if self._slot_taken(event.room_id, d, event.start_time, event.end_time, event.id):
                raise StoreError(
                    f"booking for room {event.room_id} on {d.isoformat()} overlaps existing booking",
                    code="23P01",
                )

    def _guard_unique(self, event_id: int, dates: Sequence[date], ignore_booking_id: Optional[int] = None) -> None:
        taken = {
            b.date for b in self._bookings.values()
            if b.event_id == event_id and b.id != ignore_booking_id
        }
        if len(set(dates)) != len(dates) or taken.intersection(dates):
            raise StoreError(
                'duplicate key value violates unique constraint "uq_event_booking_date"',
                code="23505",
            )

    # --- Conflict predicates -------------------------------------------------

    async def is_slot_available_for_room(
        self,
        room_id: str,
        booking_date: date,
        start_time: time,
        end_time: time,
        exclude_event_id: Optional[int] = None,
    ) -> bool:
        self._enter("is_slot_available_for_room")
        if not self.predicates_enabled:
            raise StoreError("function is_time_slot_available_for_room does not exist", code="42883")
        return not self._slot_taken(room_id, booking_date, start_time, end_time, exclude_event_id)

    async def is_slot_available(
        self,
        booking_date: date,
        start_time: time,
        end_time: time,
        exclude_event_id: Optional[int] = None,
    ) -> bool:
        self._enter("is_slot_available")
        if not self.predicates_enabled:
            raise StoreError("function is_time_slot_available does not exist", code="42883")
        return not self._slot_taken(None, booking_date, start_time, end_time, exclude_event_id)

    # --- Reads ---------------------------------------------------------------

    async def list_rooms(self, active_only: bool = True) -> list[RoomRecord]:
        self._enter("list_rooms")
        rooms = sorted(self._rooms.values(), key=lambda r: r.id)
        return [r for r in rooms if r.is_active or not active_only]

    async def get_room(self, room_id: str) -> Optional[RoomRecord]:
        self._enter("get_room")
        return self._rooms.get(room_id)

    async def get_event(self, event_id: int) -> Optional[EventRecord]:
        self._enter("get_event")
        return self._events.get(event_id)

    async def get_booking(self, booking_id: int) -> Optional[BookingWithEventDetails]:
        self._enter("get_booking")
        booking = self._bookings.get(booking_id)
        return self._details(booking) if booking else None

    async def list_event_bookings(self, event_id: int) -> list[BookingRecord]:
        self._enter("list_event_bookings")
        return sorted((b for b in self._bookings.values() if b.event_id == event_id), key=lambda b: b.date)

    async def list_bookings_for_date(self, booking_date: date) -> list[BookingWithEventDetails]:
        self._enter("list_bookings_for_date")
        details = [self._details(b) for b in self._bookings.values() if b.date == booking_date]
        return sorted(details, key=lambda d: d.start_time)

    async def list_bookings_between(
        self,
        first_date: date,
        last_date: date,
        room_id: Optional[str] = None,
    ) -> list[BookingWithEventDetails]:
        self._enter("list_bookings_between")
        details = [
            self._details(b) for b in self._bookings.values()
            if first_date <= b.date <= last_date
        ]
        if room_id is not None:
            details = [d for d in details if d.room_id == room_id]
        return sorted(details, key=lambda d: (d.date, d.start_time))

    # --- Writes --------------------------------------------------------------

    async def ensure_rooms(self, rooms: Sequence[RoomRecord]) -> int:
        self._enter("ensure_rooms")
        missing = [r for r in rooms if r.id not in self._rooms]
        for room in missing:
            self._rooms[room.id] = room
        return len(missing)

    async def insert_event(self, data: dict) -> EventRecord:
        self._enter("insert_event")
        if data.get("room_id") not in self._rooms:
            raise StoreError(
                'insert or update on table "events" violates foreign key constraint "events_room_id_fkey"',
                code="23503",
            )
        async with self._lock:
            now = _now()
            event = EventRecord(
                id=next(self._event_ids),
                created_at=now,
                updated_at=now,
                **{k: data.get(k) for k in EVENT_MUTABLE_FIELDS},
            )
            self._events[event.id] = event
        return event

    async def insert_bookings(self, event_id: int, dates: Sequence[date]) -> list[BookingRecord]:
        self._enter("insert_bookings")
        async with self._lock:
            event = self._events.get(event_id)
            if event is None:
                raise StoreError(
                    'insert or update on table "bookings" violates foreign key constraint "bookings_event_id_fkey"',
                    code="23503",
                )
            self._guard_unique(event_id, list(dates))
            self._guard_overlap(event, dates)
            now = _now()
            records = [
                BookingRecord(id=next(self._booking_ids), event_id=event_id, date=d, created_at=now, updated_at=now)
                for d in dates
            ]
            for record in records:
                self._bookings[record.id] = record
        return records

    async def update_event(self, event_id: int, changes: dict) -> Optional[EventRecord]:
        self._enter("update_event")
        async with self._lock:
            event = self._events.get(event_id)
            if event is None:
                return None
            values = {k: v for k, v in changes.items() if k in EVENT_MUTABLE_FIELDS}
            if not values:
                return event
            if "room_id" in values and values["room_id"] not in self._rooms:
                raise StoreError(
                    'insert or update on table "events" violates foreign key constraint "events_room_id_fkey"',
                    code="23503",
                )
            updated = event.model_copy(update={**values, "updated_at": _now()})
            dates = [b.date for b in self._bookings.values() if b.event_id == event_id]
            self._guard_overlap(updated, dates)
            self._events[event_id] = updated
        return updated

    async def update_booking_date(self, booking_id: int, new_date: date) -> Optional[BookingRecord]:
        self._enter("update_booking_date")
        async with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                return None
            event = self._events[booking.event_id]
            self._guard_unique(event.id, [new_date], ignore_booking_id=booking_id)
            self._guard_overlap(event, [new_date])
            updated = booking.model_copy(update={"date": new_date, "updated_at": _now()})
            self._bookings[booking_id] = updated
        return updated

    async def delete_event_bookings(self, event_id: int) -> int:
        self._enter("delete_event_bookings")
        async with self._lock:
            doomed = [b.id for b in self._bookings.values() if b.event_id == event_id]
            for booking_id in doomed:
                del self._bookings[booking_id]
        return len(doomed)

    async def delete_event(self, event_id: int) -> bool:
        self._enter("delete_event")
        async with self._lock:
            if self._events.pop(event_id, None) is None:
                return False
            # ON DELETE CASCADE
            for booking_id in [b.id for b in self._bookings.values() if b.event_id == event_id]:
                del self._bookings[booking_id]
        return True

    async def delete_booking(self, booking_id: int) -> bool:
        self._enter("delete_booking")
        async with self._lock:
            return self._bookings.pop(booking_id, None) is not None
