"""
Event model: the reservation template shared by all of its bookings.

Key design decisions:
- Room, time of day, name and contact live here, not on the booking,
  so editing them updates every date of a multi-date reservation at once
- Bookings are deleted with their event (ORM cascade + ON DELETE CASCADE)
- CHECK constraint keeps start_time < end_time at the DB level
"""

from sqlalchemy import Column, Integer, String, Time, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(String(20), ForeignKey("rooms.id"), nullable=False)
    event_name = Column(String(255), nullable=False)
    poc_name = Column(String(255), nullable=False)
    phone_number = Column(String(20), nullable=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    color = Column(String(32), nullable=True)

    # Relationships
    room = relationship("Room", back_populates="events")
    bookings = relationship(
        "Booking",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Booking.date",
    )

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_event_time_range"),
        Index("ix_events_room_id", "room_id"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, room={self.room_id}, name={self.event_name})>"
