"""
Pydantic schemas for event-related request/response validation.
"""

import re
from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, Field, StringConstraints, field_validator, model_validator

from app.schemas.common import TimeOfDay

MIN_DURATION_MINUTES = 30
MAX_DURATION_MINUTES = 12 * 60

# Only phone_number and color may be cleared on update
NON_NULLABLE_FIELDS = ("room_id", "start_time", "end_time", "event_name", "poc_name")

EventName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=255)]
PocName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=255)]

# 8 digits starting with 6, 8 or 9
_PHONE_PATTERN = re.compile(r"^[689]\d{7}$")


def normalize_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    digits = re.sub(r"\s", "", value)
    if not digits:
        return None
    if not _PHONE_PATTERN.match(digits):
        raise ValueError("Phone number must be 8 digits starting with 6, 8, or 9")
    return digits


def check_duration(start, end) -> None:
    minutes = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
    if minutes <= 0:
        raise ValueError("End time must be after start time")
    if minutes < MIN_DURATION_MINUTES:
        raise ValueError("Booking must be at least 30 minutes long")
    if minutes > MAX_DURATION_MINUTES:
        raise ValueError("Booking cannot exceed 12 hours")


class EventFields(BaseModel):
    room_id: str = Field(..., min_length=1, max_length=20)
    start_time: TimeOfDay
    end_time: TimeOfDay
    event_name: EventName
    poc_name: PocName
    phone_number: Optional[str] = None
    color: Optional[str] = Field(None, max_length=32)

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)

    @model_validator(mode="after")
    def validate_time_range(self):
        check_duration(self.start_time, self.end_time)
        return self


class EventUpdate(BaseModel):
    room_id: Optional[str] = Field(None, min_length=1, max_length=20)
    start_time: Optional[TimeOfDay] = None
    end_time: Optional[TimeOfDay] = None
    event_name: Optional[EventName] = None
    poc_name: Optional[PocName] = None
    phone_number: Optional[str] = None
    color: Optional[str] = Field(None, max_length=32)

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)

    @model_validator(mode="after")
    def reject_nulls(self):
        for name in NON_NULLABLE_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    @model_validator(mode="after")
    def validate_time_range(self):
        if self.start_time is not None and self.end_time is not None:
            check_duration(self.start_time, self.end_time)
        return self


class EventRecord(BaseModel):
    id: int
    room_id: str
    event_name: str
    poc_name: str
    phone_number: Optional[str] = None
    start_time: TimeOfDay
    end_time: TimeOfDay
    color: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
