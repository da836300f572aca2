"""
Availability endpoints. Read-only; never cached.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_booking_service
from app.core.time_range import parse_date, parse_time
from app.schemas.availability import (
    AvailabilityResponse,
    MultiDateAvailabilityRequest,
    MultiDateAvailabilityResponse,
)
from app.services.booking_service import BookingService

router = APIRouter(prefix="/availability", tags=["Availability"])


@router.get("/", response_model=AvailabilityResponse)
async def check_availability(
    room_id: str = Query(..., min_length=1),
    date: str = Query(..., description="YYYY-MM-DD"),
    start_time: str = Query(..., description="HH:MM"),
    end_time: str = Query(..., description="HH:MM"),
    exclude_event_id: Optional[int] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    """Whether the room is free on `date` for [start_time, end_time)."""
    booking_date = parse_date(date)
    start = parse_time(start_time, "start_time")
    end = parse_time(end_time, "end_time")
    available = await service.is_time_slot_available(room_id, booking_date, start, end, exclude_event_id)
    return AvailabilityResponse(
        room_id=room_id,
        date=booking_date,
        start_time=start,
        end_time=end,
        available=available,
    )


@router.post("/multi-date", response_model=MultiDateAvailabilityResponse)
async def check_multi_date_availability(
    body: MultiDateAvailabilityRequest,
    service: BookingService = Depends(get_booking_service),
):
    """
    Check the same time window on several dates at once.
    Dates come back split into available and unavailable, each in request order.
    """
    result = await service.check_multi_date_availability(
        body.dates,
        body.start_time,
        body.end_time,
        exclude_event_id=body.exclude_event_id,
        room_id=body.room_id,
    )
    return MultiDateAvailabilityResponse(available=result.available, unavailable=result.unavailable)
