"""
Availability checking for room/date/time slots.

TWO-STAGE STRATEGY
==================

  PrimaryCheck ──(True/False)──────────────────────────> verdict
       │
       └─(transport failure)──> FallbackScan ──────────> verdict

PrimaryCheck asks the store's server-side predicate: the room-scoped one
when the request names a room, the legacy room-agnostic one otherwise. A
predicate answer of False is final. Only a failure to get an answer (a
missing function, a dropped connection) sends the request to FallbackScan,
which fetches the day's bookings and looks for overlaps locally.

A failure is never read as "available".

Both stages are plain callables of (store, request), so each can be tested
on its own. Batch checks fan out one check per date concurrently and keep
the results in input order.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date, time
from typing import Iterable, Optional, Sequence

import structlog

from app.core.errors import ErrorSource, classify_error
from app.core.logging import get_logger
from app.core.metrics import record_availability_check, record_fallback
from app.core.retry import RetryPolicy
from app.core.time_range import TimeRange
from app.schemas.booking import BookingWithEventDetails
from app.services.interfaces.store import BookingStore


@dataclass(frozen=True)
class AvailabilityRequest:
    range: TimeRange
    room_id: Optional[str] = None
    exclude_event_id: Optional[int] = None


@dataclass
class MultiDateAvailability:
    available: list[date] = field(default_factory=list)
    unavailable: list[date] = field(default_factory=list)

    @property
    def all_available(self) -> bool:
        return not self.unavailable


def find_conflicts(
    requested: TimeRange,
    bookings: Iterable[BookingWithEventDetails],
    room_id: Optional[str] = None,
    exclude_event_id: Optional[int] = None,
) -> list[BookingWithEventDetails]:
    """Bookings that overlap `requested`, after room and exclusion filters."""
    conflicts = []
    for booking in bookings:
        if room_id is not None and booking.room_id != room_id:
            continue
        if exclude_event_id is not None and booking.event_id == exclude_event_id:
            continue
        if requested.overlaps(booking.time_range):
            conflicts.append(booking)
    return conflicts


class PrimaryCheck:
    """Server-side predicate. Raises on transport failure."""

    async def __call__(self, store: BookingStore, request: AvailabilityRequest) -> bool:
        slot = request.range
        if request.room_id is not None:
            return await store.is_slot_available_for_room(
                request.room_id, slot.date, slot.start, slot.end, request.exclude_event_id
            )
        return await store.is_slot_available(slot.date, slot.start, slot.end, request.exclude_event_id)


class FallbackScan:
    """Client-side overlap scan over the day's bookings."""

    def __init__(self, retry_policy: Optional[RetryPolicy] = None, logger=None):
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = logger or get_logger(__name__)

    async def __call__(self, store: BookingStore, request: AvailabilityRequest) -> bool:
        bookings = await self.retry_policy.run(
            lambda: store.list_bookings_for_date(request.range.date),
            operation_name="list_bookings_for_date",
            source=ErrorSource.AVAILABILITY,
            logger=self.logger,
        )
        conflicts = find_conflicts(request.range, bookings, request.room_id, request.exclude_event_id)
        if conflicts:
            self.logger.debug(
                "availability_conflicts_found",
                date=request.range.date.isoformat(),
                room_id=request.room_id,
                conflicting_booking_ids=[c.id for c in conflicts],
            )
        return not conflicts


class AvailabilityChecker:

    def __init__(
        self,
        store: BookingStore,
        retry_policy: Optional[RetryPolicy] = None,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        primary: Optional[PrimaryCheck] = None,
        fallback: Optional[FallbackScan] = None,
    ):
        self.store = store
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = logger or get_logger(__name__)
        self.primary = primary or PrimaryCheck()
        self.fallback = fallback or FallbackScan(self.retry_policy, self.logger)

    async def is_available(self, request: AvailabilityRequest) -> bool:
        try:
            available = await self.primary(self.store, request)
            record_availability_check("primary", available)
            return available
        except Exception as e:
            error = classify_error(e, source=ErrorSource.AVAILABILITY)
            self.logger.warning(
                "availability_fallback",
                reason=error.message,
                kind=error.kind.value,
                date=request.range.date.isoformat(),
                room_id=request.room_id,
            )
            record_fallback()

        available = await self.fallback(self.store, request)
        record_availability_check("fallback", available)
        return available

    async def is_time_slot_available(
        self,
        room_id: str,
        booking_date: date,
        start_time: time,
        end_time: time,
        exclude_event_id: Optional[int] = None,
    ) -> bool:
        request = AvailabilityRequest(TimeRange(booking_date, start_time, end_time), room_id, exclude_event_id)
        return await self.is_available(request)

    async def check_multi_date(
        self,
        dates: Sequence[date],
        start_time: time,
        end_time: time,
        room_id: Optional[str] = None,
        exclude_event_id: Optional[int] = None,
    ) -> MultiDateAvailability:
        # Validates the time range once, before any remote call
        template = TimeRange(dates[0], start_time, end_time) if dates else None
        if template is None:
            return MultiDateAvailability()

        requests = [AvailabilityRequest(template.on(d), room_id, exclude_event_id) for d in dates]
        verdicts = await asyncio.gather(*(self.is_available(r) for r in requests))

        result = MultiDateAvailability()
        for d, available in zip(dates, verdicts):
            (result.available if available else result.unavailable).append(d)

        self.logger.info(
            "multi_date_availability_checked",
            room_id=room_id,
            dates=len(dates),
            unavailable=[d.isoformat() for d in result.unavailable],
        )
        return result
