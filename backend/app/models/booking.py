"""
Booking model: one concrete date occurrence of an Event.

Key design decisions:
- Unique constraint on (event_id, date): an event occurs at most once per date
- Index on date: availability checks and calendar listings filter by date
- Room/time overlap between different events is guarded by the
  availability check and, on PostgreSQL, by the overlap trigger (migration 003)
"""

from sqlalchemy import Column, Date, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)

    # Relationships
    event = relationship("Event", back_populates="bookings")

    __table_args__ = (
        UniqueConstraint("event_id", "date", name="uq_event_booking_date"),
        Index("ix_bookings_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, event={self.event_id}, date={self.date})>"
