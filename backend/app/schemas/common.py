"""
Shared field types for the wire format: YYYY-MM-DD dates and HH:MM times.
"""

from datetime import date, time
from typing import Annotated

from pydantic import BeforeValidator, PlainSerializer

from app.core.errors import ValidationError
from app.core.time_range import format_date, format_time, parse_date, parse_time


def _validate_date(value):
    try:
        return parse_date(value)
    except ValidationError as e:
        raise ValueError(e.message) from e


def _validate_time(value):
    try:
        return parse_time(value)
    except ValidationError as e:
        raise ValueError(e.message) from e


CalendarDate = Annotated[
    date,
    BeforeValidator(_validate_date),
    PlainSerializer(format_date, return_type=str, when_used="json"),
]
TimeOfDay = Annotated[
    time,
    BeforeValidator(_validate_time),
    PlainSerializer(format_time, return_type=str, when_used="json"),
]
