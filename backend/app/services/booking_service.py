"""
Booking/event mutation service.

Every mutation moves through:
  validating -> checking_availability -> persisting -> done | failed

CONFLICT STRATEGY: Check, then insert
=====================================

Problem:
  A room may not hold two bookings on the same date whose [start, end)
  ranges overlap.

Solution:
  1. Validate the request (time order, room exists)
  2. Ask the AvailabilityChecker for every affected date
  3. Only if every date is free, write the event and its bookings

  Multi-date creation is all-or-nothing at the date-set level: a single
  unavailable date fails the whole request, names every unavailable date,
  and writes nothing.

  Each store call is retried on its own (see app.core.retry). The
  availability phase and the persist phase are separate retry units.

Known gaps:
  - Check-then-insert is not race-free. Two callers can both pass step 2
    before either writes. On PostgreSQL the overlap trigger from migration
    003 serializes writes per (room, date) and rejects the loser with
    SQLSTATE 23P01, which surfaces here as a BookingConflictError.
  - Event and bookings are written by two store calls. If the booking
    insert fails after the event insert succeeded, the request fails and
    the event row is left behind without bookings (logged as
    "orphaned_event").
"""

import calendar
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from datetime import date, time
from enum import Enum
from time import perf_counter
from typing import Optional, Sequence

import structlog

from app.core.errors import (
    BookingConflictError,
    BookingError,
    BookingNotFoundError,
    ErrorSource,
    ValidationError,
    classify_error,
)
from app.core.logging import get_logger
from app.core.metrics import booking_latency, record_booking_attempt
from app.core.retry import RetryPolicy
from app.core.time_range import TimeRange, check_time_order
from app.schemas.booking import BookingWithEventDetails, EventWithBookings
from app.schemas.event import NON_NULLABLE_FIELDS, EventRecord, check_duration
from app.services.availability_service import (
    AvailabilityChecker,
    AvailabilityRequest,
    MultiDateAvailability,
)
from app.services.interfaces.store import EVENT_MUTABLE_FIELDS, BookingStore
from app.services.room_service import RoomService


class MutationState(str, Enum):
    VALIDATING = "validating"
    CHECKING_AVAILABILITY = "checking_availability"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class EventDetails:
    """Fields shared by every booking of an event."""

    room_id: str
    start_time: time
    end_time: time
    event_name: str
    poc_name: str
    phone_number: Optional[str] = None
    color: Optional[str] = None

    def to_row(self) -> dict:
        return asdict(self)


class MutationTrace:
    def __init__(self, operation: str, logger: structlog.stdlib.BoundLogger):
        self.operation = operation
        self.logger = logger
        self.state = MutationState.VALIDATING

    def advance(self, state: MutationState) -> None:
        self.state = state
        self.logger.debug("mutation_state", state=state.value)


class BookingService:

    def __init__(
        self,
        store: BookingStore,
        checker: Optional[AvailabilityChecker] = None,
        rooms: Optional[RoomService] = None,
        retry_policy: Optional[RetryPolicy] = None,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ):
        self.store = store
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = logger or get_logger(__name__)
        self.checker = checker or AvailabilityChecker(store, self.retry_policy, self.logger)
        self.rooms = rooms or RoomService(store, self.retry_policy, self.logger)

    async def _call(self, operation_name: str, operation):
        return await self.retry_policy.run(
            operation,
            operation_name=operation_name,
            source=ErrorSource.STORE,
            logger=self.logger,
        )

    @asynccontextmanager
    async def _mutation(self, operation: str, **context):
        trace = MutationTrace(operation, self.logger.bind(operation=operation, **context))
        started = perf_counter()
        try:
            yield trace
        except Exception as e:
            error = classify_error(e, source=ErrorSource.BOOKING)
            failed_in = trace.state
            trace.advance(MutationState.FAILED)
            status = "conflict" if isinstance(error, BookingConflictError) else "error"
            record_booking_attempt(operation, status)
            trace.logger.warning(
                "mutation_failed",
                failed_in=failed_in.value,
                kind=error.kind.value,
                error=error.message,
            )
            if error is e:
                raise
            raise error from e
        else:
            trace.advance(MutationState.DONE)
            record_booking_attempt(operation, "success")
        finally:
            booking_latency.labels(operation=operation).observe(perf_counter() - started)

    # --- Availability --------------------------------------------------------

    async def is_time_slot_available(
        self,
        room_id: str,
        booking_date: date,
        start_time: time,
        end_time: time,
        exclude_event_id: Optional[int] = None,
    ) -> bool:
        return await self.checker.is_time_slot_available(
            room_id, booking_date, start_time, end_time, exclude_event_id
        )

    async def check_multi_date_availability(
        self,
        dates: Sequence[date],
        start_time: time,
        end_time: time,
        exclude_event_id: Optional[int] = None,
        room_id: Optional[str] = None,
    ) -> MultiDateAvailability:
        check_time_order(start_time, end_time)
        return await self.checker.check_multi_date(
            dates, start_time, end_time, room_id=room_id, exclude_event_id=exclude_event_id
        )

    # --- Create --------------------------------------------------------------

    async def create_booking_with_event(self, details: EventDetails, booking_date: date) -> EventWithBookings:
        """Create an event with a single booking on `booking_date`."""
        async with self._mutation("create_booking", room_id=details.room_id, date=booking_date.isoformat()) as op:
            slot = TimeRange(booking_date, details.start_time, details.end_time)
            await self.rooms.require_active_room(details.room_id)

            op.advance(MutationState.CHECKING_AVAILABILITY)
            if not await self.checker.is_available(AvailabilityRequest(slot, details.room_id)):
                raise BookingConflictError([booking_date])

            op.advance(MutationState.PERSISTING)
            result = await self._persist(details, [booking_date])

            self.logger.info(
                "booking_created",
                event_id=result.event.id,
                booking_id=result.bookings[0].id,
                room_id=details.room_id,
                date=booking_date.isoformat(),
            )
            return result

    async def create_multi_date_booking(self, details: EventDetails, dates: Sequence[date]) -> EventWithBookings:
        """
        Create one event with a booking on each of `dates`.
        Fails without writing anything if any date is unavailable.
        """
        dates = list(dates)
        async with self._mutation("create_multi_date_booking", room_id=details.room_id, dates=len(dates)) as op:
            if not dates:
                raise ValidationError("dates", "at least one date must be selected")
            if len(set(dates)) != len(dates):
                raise ValidationError("dates", "duplicate dates are not allowed")
            check_time_order(details.start_time, details.end_time)
            await self.rooms.require_active_room(details.room_id)

            op.advance(MutationState.CHECKING_AVAILABILITY)
            availability = await self.checker.check_multi_date(
                dates, details.start_time, details.end_time, room_id=details.room_id
            )
            if availability.unavailable:
                raise BookingConflictError(availability.unavailable)

            op.advance(MutationState.PERSISTING)
            result = await self._persist(details, dates)

            self.logger.info(
                "multi_date_booking_created",
                event_id=result.event.id,
                room_id=details.room_id,
                dates=[d.isoformat() for d in dates],
            )
            return result

    async def _persist(self, details: EventDetails, dates: list[date]) -> EventWithBookings:
        event = await self._call("insert_event", lambda: self.store.insert_event(details.to_row()))
        try:
            bookings = await self._call("insert_bookings", lambda: self.store.insert_bookings(event.id, dates))
        except BookingError as e:
            self.logger.warning("orphaned_event", event_id=event.id, kind=e.kind.value, error=e.message)
            if isinstance(e, BookingConflictError) and not e.dates:
                raise BookingConflictError(dates, source=ErrorSource.STORE, cause=e) from e
            raise
        return EventWithBookings(event=event, bookings=bookings)

    # --- Update --------------------------------------------------------------

    async def update_event(self, event_id: int, changes: dict) -> EventRecord:
        """
        Update event fields. When room or time changes, every booking date of
        the event is re-checked with the event itself excluded.
        """
        async with self._mutation("update_event", event_id=event_id) as op:
            changes = {k: v for k, v in changes.items() if k in EVENT_MUTABLE_FIELDS}
            current = await self._call("get_event", lambda: self.store.get_event(event_id))
            if current is None:
                raise BookingNotFoundError("Event", event_id)

            for field in NON_NULLABLE_FIELDS:
                if field in changes and changes[field] is None:
                    raise ValidationError(field, f"{field} cannot be null")

            room_id = changes.get("room_id", current.room_id)
            start_time = changes.get("start_time", current.start_time)
            end_time = changes.get("end_time", current.end_time)
            check_time_order(start_time, end_time)
            if "start_time" in changes or "end_time" in changes:
                try:
                    check_duration(start_time, end_time)
                except ValueError as e:
                    raise ValidationError("end_time", str(e)) from e

            booking_dates: list[date] = []
            slot_changed = (room_id, start_time, end_time) != (current.room_id, current.start_time, current.end_time)
            if slot_changed:
                if room_id != current.room_id:
                    await self.rooms.require_active_room(room_id)

                op.advance(MutationState.CHECKING_AVAILABILITY)
                bookings = await self._call("list_event_bookings", lambda: self.store.list_event_bookings(event_id))
                booking_dates = [b.date for b in bookings]
                if booking_dates:
                    availability = await self.checker.check_multi_date(
                        booking_dates,
                        start_time,
                        end_time,
                        room_id=room_id,
                        exclude_event_id=event_id,
                    )
                    if availability.unavailable:
                        raise BookingConflictError(availability.unavailable)

            op.advance(MutationState.PERSISTING)
            try:
                updated = await self._call("update_event", lambda: self.store.update_event(event_id, changes))
            except BookingConflictError as e:
                if e.dates or not booking_dates:
                    raise
                raise BookingConflictError(booking_dates, source=ErrorSource.STORE, cause=e) from e
            if updated is None:
                raise BookingNotFoundError("Event", event_id)

            self.logger.info("event_updated", event_id=event_id, fields=sorted(changes))
            return updated

    async def update_booking_date(self, booking_id: int, new_date: date) -> BookingWithEventDetails:
        """Move one occurrence to another date, keeping the event's room and time."""
        async with self._mutation("update_booking_date", booking_id=booking_id, date=new_date.isoformat()) as op:
            current = await self._call("get_booking", lambda: self.store.get_booking(booking_id))
            if current is None:
                raise BookingNotFoundError("Booking", booking_id)
            if current.date == new_date:
                return current

            op.advance(MutationState.CHECKING_AVAILABILITY)
            siblings = await self._call(
                "list_event_bookings", lambda: self.store.list_event_bookings(current.event_id)
            )
            if any(b.date == new_date and b.id != booking_id for b in siblings):
                raise BookingConflictError(
                    [new_date],
                    message=f"Event {current.event_id} already has a booking on {new_date.isoformat()}",
                )

            request = AvailabilityRequest(
                TimeRange(new_date, current.start_time, current.end_time),
                room_id=current.room_id,
                exclude_event_id=current.event_id,
            )
            if not await self.checker.is_available(request):
                raise BookingConflictError([new_date])

            op.advance(MutationState.PERSISTING)
            try:
                updated = await self._call(
                    "update_booking_date", lambda: self.store.update_booking_date(booking_id, new_date)
                )
            except BookingConflictError as e:
                if e.dates:
                    raise
                raise BookingConflictError([new_date], source=ErrorSource.STORE, cause=e) from e
            if updated is None:
                raise BookingNotFoundError("Booking", booking_id)

            self.logger.info(
                "booking_date_updated",
                booking_id=booking_id,
                from_date=current.date.isoformat(),
                to_date=new_date.isoformat(),
            )
            return current.model_copy(update={"date": updated.date, "updated_at": updated.updated_at})

    # --- Delete --------------------------------------------------------------

    async def delete_event(self, event_id: int) -> None:
        """Delete every booking of the event, then the event."""
        async with self._mutation("delete_event", event_id=event_id) as op:
            current = await self._call("get_event", lambda: self.store.get_event(event_id))
            if current is None:
                raise BookingNotFoundError("Event", event_id)

            op.advance(MutationState.PERSISTING)
            removed = await self._call("delete_event_bookings", lambda: self.store.delete_event_bookings(event_id))
            deleted = await self._call("delete_event", lambda: self.store.delete_event(event_id))
            if not deleted:
                raise BookingNotFoundError("Event", event_id)

            self.logger.info("event_deleted", event_id=event_id, bookings_deleted=removed)

    async def delete_booking(self, booking_id: int) -> None:
        """Delete a single occurrence. The event and its other dates remain."""
        async with self._mutation("delete_booking", booking_id=booking_id) as op:
            op.advance(MutationState.PERSISTING)
            deleted = await self._call("delete_booking", lambda: self.store.delete_booking(booking_id))
            if not deleted:
                raise BookingNotFoundError("Booking", booking_id)
            self.logger.info("booking_deleted", booking_id=booking_id)

    # --- Reads ---------------------------------------------------------------

    async def get_event(self, event_id: int) -> EventWithBookings:
        event = await self._call("get_event", lambda: self.store.get_event(event_id))
        if event is None:
            raise BookingNotFoundError("Event", event_id)
        bookings = await self._call("list_event_bookings", lambda: self.store.list_event_bookings(event_id))
        return EventWithBookings(event=event, bookings=bookings)

    async def get_booking(self, booking_id: int) -> BookingWithEventDetails:
        booking = await self._call("get_booking", lambda: self.store.get_booking(booking_id))
        if booking is None:
            raise BookingNotFoundError("Booking", booking_id)
        return booking

    async def list_bookings_for_date(
        self, booking_date: date, room_id: Optional[str] = None
    ) -> list[BookingWithEventDetails]:
        bookings = await self._call(
            "list_bookings_for_date", lambda: self.store.list_bookings_for_date(booking_date)
        )
        if room_id is not None:
            bookings = [b for b in bookings if b.room_id == room_id]
        return bookings

    async def list_bookings_for_month(
        self, year: int, month: int, room_id: Optional[str] = None
    ) -> list[BookingWithEventDetails]:
        if not 1 <= month <= 12:
            raise ValidationError("month", "month must be between 1 and 12")
        if not 1 <= year <= 9999:
            raise ValidationError("year", "year is out of range")
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        return await self._call(
            "list_bookings_between", lambda: self.store.list_bookings_between(first, last, room_id)
        )
