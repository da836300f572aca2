"""
Tests for date/time parsing and the half-open overlap rule.
"""

from datetime import date, time

import pytest

from app.core.errors import ErrorKind, InvalidRangeError, ValidationError
from app.core.time_range import TimeRange, format_date, format_time, parse_date, parse_time


def test_parse_and_format_wire_formats():
    assert parse_date("2025-06-15") == date(2025, 6, 15)
    assert parse_time("09:05") == time(9, 5)
    assert format_date(date(2025, 6, 5)) == "2025-06-05"
    assert format_time(time(7, 0)) == "07:00"


@pytest.mark.parametrize("value", ["15/06/2025", "2025-6-15", "2025-02-30", "", "2025-06-15T10:00"])
def test_parse_date_rejects_malformed(value):
    with pytest.raises(ValidationError) as exc_info:
        parse_date(value)
    assert exc_info.value.kind == ErrorKind.VALIDATION_ERROR


@pytest.mark.parametrize("value", ["9:00", "24:00", "10:60", "10:00:00", "noon"])
def test_parse_time_rejects_malformed(value):
    with pytest.raises(ValidationError):
        parse_time(value)


def test_parse_time_truncates_seconds():
    assert parse_time(time(9, 30, 45)) == time(9, 30)


def test_range_requires_start_before_end():
    with pytest.raises(InvalidRangeError):
        TimeRange.parse("2025-06-15", "10:00", "10:00")
    with pytest.raises(InvalidRangeError):
        TimeRange.parse("2025-06-15", "11:00", "10:00")


def test_adjacent_ranges_do_not_overlap():
    """09:00-10:00 and 10:00-11:00 share only the boundary instant."""
    first = TimeRange.parse("2025-06-15", "09:00", "10:00")
    second = TimeRange.parse("2025-06-15", "10:00", "11:00")
    assert not first.overlaps(second)
    assert not second.overlaps(first)


def test_partial_and_contained_ranges_overlap():
    booked = TimeRange.parse("2025-06-15", "09:00", "11:00")
    assert booked.overlaps(TimeRange.parse("2025-06-15", "10:30", "12:00"))
    assert booked.overlaps(TimeRange.parse("2025-06-15", "08:00", "09:30"))
    assert booked.overlaps(TimeRange.parse("2025-06-15", "09:30", "10:00"))
    assert booked.overlaps(TimeRange.parse("2025-06-15", "08:00", "12:00"))


def test_different_dates_never_overlap():
    a = TimeRange.parse("2025-06-15", "09:00", "11:00")
    b = TimeRange.parse("2025-06-16", "09:00", "11:00")
    assert not a.overlaps(b)


def test_on_moves_range_to_another_date():
    slot = TimeRange.parse("2025-06-15", "09:00", "10:30")
    moved = slot.on(date(2025, 6, 20))
    assert moved.date == date(2025, 6, 20)
    assert (moved.start, moved.end) == (slot.start, slot.end)
    assert moved.duration_minutes == 90
    assert str(moved) == "2025-06-20 09:00-10:30"
