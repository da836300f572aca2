from app.models.room import Room
from app.models.event import Event
from app.models.booking import Booking

__all__ = ["Room", "Event", "Booking"]
