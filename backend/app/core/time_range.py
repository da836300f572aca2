"""
Calendar dates, times of day and the half-open time range they form.

Boundary formats are fixed: dates are YYYY-MM-DD, times are HH:MM (24h).
Parsing never depends on locale.
"""

import re
from dataclasses import dataclass
from datetime import date, time
from typing import Union

from app.core.errors import InvalidRangeError, ValidationError

_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_date(value: Union[str, date], field: str = "date") -> date:
    if isinstance(value, date):
        return value
    match = _DATE_PATTERN.match(value) if isinstance(value, str) else None
    if not match:
        raise ValidationError(field, f"'{value}' must be in YYYY-MM-DD format")
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError as e:
        raise ValidationError(field, f"'{value}' is not a valid calendar date", cause=e)


def parse_time(value: Union[str, time], field: str = "time") -> time:
    if isinstance(value, time):
        # Minute resolution
        return value.replace(second=0, microsecond=0, tzinfo=None)
    match = _TIME_PATTERN.match(value) if isinstance(value, str) else None
    if not match:
        raise ValidationError(field, f"'{value}' must be in HH:MM format")
    return time(int(match.group(1)), int(match.group(2)))


def format_date(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def format_time(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def check_time_order(start: time, end: time) -> None:
    if _minutes(start) >= _minutes(end):
        raise InvalidRangeError(format_time(start), format_time(end))


@dataclass(frozen=True)
class TimeRange:
    """
    Half-open interval [start, end) of time of day on a calendar date.

    Two ranges conflict only when they share a date and intersect:
    09:00-10:00 and 10:00-11:00 touch but do not overlap.
    """

    date: date
    start: time
    end: time

    def __post_init__(self):
        object.__setattr__(self, "date", parse_date(self.date))
        object.__setattr__(self, "start", parse_time(self.start, "start_time"))
        object.__setattr__(self, "end", parse_time(self.end, "end_time"))
        check_time_order(self.start, self.end)

    @classmethod
    def parse(cls, date_value: Union[str, date], start: Union[str, time], end: Union[str, time]) -> "TimeRange":
        return cls(parse_date(date_value), parse_time(start, "start_time"), parse_time(end, "end_time"))

    @property
    def duration_minutes(self) -> int:
        return _minutes(self.end) - _minutes(self.start)

    def on(self, other_date: date) -> "TimeRange":
        """Same times of day on a different date."""
        return TimeRange(other_date, self.start, self.end)

    def overlaps(self, other: "TimeRange") -> bool:
        if self.date != other.date:
            return False
        return _minutes(self.start) < _minutes(other.end) and _minutes(self.end) > _minutes(other.start)

    def __str__(self) -> str:
        return f"{format_date(self.date)} {format_time(self.start)}-{format_time(self.end)}"
