"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from app.core.time_range import TimeRange
from app.schemas.common import CalendarDate, TimeOfDay
from app.schemas.event import EventFields, EventRecord

MAX_DATES_PER_BOOKING = 30


def _not_in_past(value: date) -> date:
    if value < date.today():
        raise ValueError("Date must be today or in the future")
    return value


class BookingCreate(EventFields):
    date: CalendarDate

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: date) -> date:
        return _not_in_past(v)


class MultiDateBookingCreate(EventFields):
    """
    Either an explicit list of dates or a consecutive start_date..end_date
    range (inclusive). The range form is expanded into `dates`.
    """

    dates: list[CalendarDate] = []
    start_date: Optional[CalendarDate] = None
    end_date: Optional[CalendarDate] = None

    @model_validator(mode="after")
    def expand_and_validate_dates(self):
        if self.start_date is not None or self.end_date is not None:
            if self.dates:
                raise ValueError("Provide either dates or start_date/end_date, not both")
            if self.start_date is None or self.end_date is None:
                raise ValueError("Both start_date and end_date are required for a date range")
            if self.end_date < self.start_date:
                raise ValueError("end_date must not be before start_date")
            span = (self.end_date - self.start_date).days + 1
            if span > MAX_DATES_PER_BOOKING:
                raise ValueError(f"Cannot select more than {MAX_DATES_PER_BOOKING} dates")
            self.dates = [self.start_date + timedelta(days=i) for i in range(span)]

        if not self.dates:
            raise ValueError("At least one date must be selected")
        if len(self.dates) > MAX_DATES_PER_BOOKING:
            raise ValueError(f"Cannot select more than {MAX_DATES_PER_BOOKING} dates")
        if len(set(self.dates)) != len(self.dates):
            raise ValueError("Duplicate dates are not allowed")
        for d in self.dates:
            _not_in_past(d)
        return self


class BookingDateUpdate(BaseModel):
    date: CalendarDate

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: date) -> date:
        return _not_in_past(v)


class BookingRecord(BaseModel):
    id: int
    event_id: int
    date: CalendarDate
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingWithEventDetails(BaseModel):
    """Denormalized Booking + Event + Room read model. Never written directly."""

    id: int
    event_id: int
    date: CalendarDate
    room_id: str
    room_name: str
    event_name: str
    poc_name: str
    phone_number: Optional[str] = None
    start_time: TimeOfDay
    end_time: TimeOfDay
    color: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(self.date, self.start_time, self.end_time)


class EventWithBookings(BaseModel):
    event: EventRecord
    bookings: list[BookingRecord]


class BookingListResponse(BaseModel):
    bookings: list[BookingWithEventDetails]
    total: int
    year: int
    month: int
    room_id: Optional[str] = None
    cached: bool = False
