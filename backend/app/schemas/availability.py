"""
Pydantic schemas for availability queries.
"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.schemas.common import CalendarDate, TimeOfDay


class MultiDateAvailabilityRequest(BaseModel):
    dates: list[CalendarDate] = Field(..., min_length=1, max_length=366)
    start_time: TimeOfDay
    end_time: TimeOfDay
    room_id: Optional[str] = None
    exclude_event_id: Optional[int] = None

    @model_validator(mode="after")
    def validate_time_range(self):
        if self.start_time >= self.end_time:
            raise ValueError("End time must be after start time")
        return self


class AvailabilityResponse(BaseModel):
    room_id: str
    date: CalendarDate
    start_time: TimeOfDay
    end_time: TimeOfDay
    available: bool


class MultiDateAvailabilityResponse(BaseModel):
    available: list[CalendarDate]
    unavailable: list[CalendarDate]
