"""
Room reference data.

The catalog is a small closed set seeded by migration; rooms are never
deleted while events reference them.
"""

from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Room(Base, TimestampMixin):
    __tablename__ = "rooms"

    id = Column(String(20), primary_key=True)
    name = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    events = relationship("Event", back_populates="room")

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, name={self.name}, active={self.is_active})>"
