"""
Booking endpoints with conflict-checked creation and a cached month listing.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from app.api.dependencies import get_booking_service
from app.core.logging import get_logger
from app.core.time_range import parse_date
from app.schemas.booking import (
    BookingCreate,
    BookingDateUpdate,
    BookingListResponse,
    BookingWithEventDetails,
    EventWithBookings,
    MultiDateBookingCreate,
)
from app.services.booking_service import BookingService, EventDetails
from app.services.cache_service import get_cached_month, invalidate_booking_cache, set_cached_month

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])

_DETAIL_FIELDS = {"room_id", "start_time", "end_time", "event_name", "poc_name", "phone_number", "color"}


def _event_details(body) -> EventDetails:
    return EventDetails(**body.model_dump(include=_DETAIL_FIELDS))


@router.post("/", response_model=EventWithBookings, status_code=status.HTTP_201_CREATED)
async def create_booking(
    body: BookingCreate,
    service: BookingService = Depends(get_booking_service),
):
    """
    Create an event with a single booking.

    Returns 409 with the conflicting date if the room is already taken for
    any part of the requested time.
    """
    result = await service.create_booking_with_event(_event_details(body), body.date)
    await invalidate_booking_cache()
    return result


@router.post("/multi-date", response_model=EventWithBookings, status_code=status.HTTP_201_CREATED)
async def create_multi_date_booking(
    body: MultiDateBookingCreate,
    service: BookingService = Depends(get_booking_service),
):
    """
    Create one event booked on several dates.

    All-or-nothing: if any date is taken, nothing is written and the 409
    response lists every unavailable date.
    """
    result = await service.create_multi_date_booking(_event_details(body), body.dates)
    await invalidate_booking_cache()
    return result


@router.get("/", response_model=BookingListResponse)
async def list_month_bookings(
    year: int = Query(..., ge=1, le=9999),
    month: int = Query(..., ge=1, le=12),
    room_id: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    """
    List a calendar month of bookings, optionally for one room.
    Results are cached in Redis and invalidated on every booking mutation.
    """
    cached = await get_cached_month(year, month, room_id)
    if cached:
        logger.info("month_list_cache_hit", year=year, month=month, room_id=room_id)
        cached["cached"] = True
        return BookingListResponse(**cached)

    bookings = await service.list_bookings_for_month(year, month, room_id)
    response = BookingListResponse(
        bookings=bookings,
        total=len(bookings),
        year=year,
        month=month,
        room_id=room_id,
        cached=False,
    )
    await set_cached_month(year, month, room_id, response.model_dump(mode="json"))
    return response


@router.get("/date/{booking_date}", response_model=list[BookingWithEventDetails])
async def list_date_bookings(
    booking_date: str,
    room_id: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    """All bookings on one date, ordered by start time."""
    return await service.list_bookings_for_date(parse_date(booking_date), room_id)


@router.get("/{booking_id}", response_model=BookingWithEventDetails)
async def get_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
):
    return await service.get_booking(booking_id)


@router.patch("/{booking_id}", response_model=BookingWithEventDetails)
async def update_booking_date(
    booking_id: int,
    body: BookingDateUpdate,
    service: BookingService = Depends(get_booking_service),
):
    """Move a single occurrence to another date. Room and time stay the event's."""
    booking = await service.update_booking_date(booking_id, body.date)
    await invalidate_booking_cache()
    return booking


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
):
    """Delete one occurrence. The event and its other dates remain."""
    await service.delete_booking(booking_id)
    await invalidate_booking_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
