"""
Event endpoints. An event groups all bookings that share room, time and contact.
"""

from fastapi import APIRouter, Depends, Response, status

from app.api.dependencies import get_booking_service
from app.schemas.booking import EventWithBookings
from app.schemas.event import EventRecord, EventUpdate
from app.services.booking_service import BookingService
from app.services.cache_service import invalidate_booking_cache

router = APIRouter(prefix="/events", tags=["Events"])


@router.get("/{event_id}", response_model=EventWithBookings)
async def get_event(
    event_id: int,
    service: BookingService = Depends(get_booking_service),
):
    """Get an event with all of its booking dates."""
    return await service.get_event(event_id)


@router.patch("/{event_id}", response_model=EventRecord)
async def update_event(
    event_id: int,
    body: EventUpdate,
    service: BookingService = Depends(get_booking_service),
):
    """
    Update event fields. Changing room or time re-checks every booking date
    of the event (ignoring the event's own bookings) and returns 409 listing
    the dates that would collide.
    """
    event = await service.update_event(event_id, body.model_dump(exclude_unset=True))
    await invalidate_booking_cache()
    return event


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: int,
    service: BookingService = Depends(get_booking_service),
):
    """Delete an event together with all of its bookings."""
    await service.delete_event(event_id)
    await invalidate_booking_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
