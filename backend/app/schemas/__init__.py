from app.schemas.room import RoomRecord
from app.schemas.event import EventUpdate, EventRecord
from app.schemas.booking import (
    BookingCreate,
    MultiDateBookingCreate,
    BookingDateUpdate,
    BookingRecord,
    BookingWithEventDetails,
    EventWithBookings,
    BookingListResponse,
)
from app.schemas.availability import (
    MultiDateAvailabilityRequest,
    AvailabilityResponse,
    MultiDateAvailabilityResponse,
)

__all__ = [
    "RoomRecord",
    "EventUpdate", "EventRecord",
    "BookingCreate", "MultiDateBookingCreate", "BookingDateUpdate",
    "BookingRecord", "BookingWithEventDetails", "EventWithBookings", "BookingListResponse",
    "MultiDateAvailabilityRequest", "AvailabilityResponse", "MultiDateAvailabilityResponse",
]
