"""
Tests for the booking/event mutation service against the in-memory store.
"""

from datetime import date, time

import pytest

from app.core.errors import (
    BookingConflictError,
    BookingError,
    BookingNotFoundError,
    ErrorKind,
    InvalidRangeError,
    ValidationError,
)
from app.infrastructure.memory_store import StoreError

JUNE_15 = date(2025, 6, 15)
JUNE_16 = date(2025, 6, 16)
JUNE_17 = date(2025, 6, 17)


@pytest.mark.asyncio
async def test_create_booking_round_trip(booking_service, details):
    created = await booking_service.create_booking_with_event(details(), JUNE_15)

    assert created.event.room_id == "1-21"
    assert created.event.event_name == "Team Meeting"
    assert [b.date for b in created.bookings] == [JUNE_15]

    listed = await booking_service.list_bookings_for_date(JUNE_15)
    assert len(listed) == 1
    assert listed[0].event_id == created.event.id
    assert listed[0].room_name == "Room 1-21 (Main Conference Room)"
    assert listed[0].start_time == time(9, 0)
    assert listed[0].end_time == time(10, 0)


@pytest.mark.asyncio
async def test_overlapping_booking_is_rejected(booking_service, details):
    await booking_service.create_booking_with_event(details(start="09:00", end="11:00"), JUNE_15)

    with pytest.raises(BookingConflictError) as exc_info:
        await booking_service.create_booking_with_event(details(start="10:00", end="12:00"), JUNE_15)

    assert exc_info.value.dates == ["2025-06-15"]
    assert exc_info.value.kind.http_status == 409


@pytest.mark.asyncio
async def test_adjacent_and_other_room_bookings_succeed(booking_service, details):
    await booking_service.create_booking_with_event(details(start="09:00", end="10:00"), JUNE_15)
    await booking_service.create_booking_with_event(details(start="10:00", end="11:00"), JUNE_15)
    await booking_service.create_booking_with_event(details(room_id="1-17", start="09:00", end="10:00"), JUNE_15)

    assert len(await booking_service.list_bookings_for_date(JUNE_15)) == 3
    assert len(await booking_service.list_bookings_for_date(JUNE_15, room_id="1-17")) == 1


@pytest.mark.asyncio
async def test_unknown_room_is_validation_error(booking_service, details, store):
    with pytest.raises(ValidationError) as exc_info:
        await booking_service.create_booking_with_event(details(room_id="9-99"), JUNE_15)
    assert exc_info.value.field == "room_id"
    assert store.calls["insert_event"] == 0


@pytest.mark.asyncio
async def test_inverted_range_fails_before_any_store_call(booking_service, details, store):
    with pytest.raises(InvalidRangeError):
        await booking_service.create_booking_with_event(details(start="11:00", end="10:00"), JUNE_15)
    assert sum(store.calls.values()) == 0


@pytest.mark.asyncio
async def test_multi_date_is_all_or_nothing(booking_service, details, store):
    await booking_service.create_booking_with_event(details(start="09:00", end="10:00"), JUNE_16)

    with pytest.raises(BookingConflictError) as exc_info:
        await booking_service.create_multi_date_booking(
            details(start="09:30", end="10:30", name="Workshop"), [JUNE_15, JUNE_16, JUNE_17]
        )

    assert exc_info.value.dates == ["2025-06-16"]
    assert "2025-06-16" in exc_info.value.user_message
    assert store.calls["insert_event"] == 1  # only the first booking's event
    assert await booking_service.list_bookings_for_date(JUNE_15) == []
    assert await booking_service.list_bookings_for_date(JUNE_17) == []


@pytest.mark.asyncio
async def test_multi_date_reports_every_unavailable_date(booking_service, details):
    await booking_service.create_multi_date_booking(details(), [JUNE_15, JUNE_17])

    with pytest.raises(BookingConflictError) as exc_info:
        await booking_service.create_multi_date_booking(details(), [JUNE_17, JUNE_16, JUNE_15])

    assert exc_info.value.dates == ["2025-06-17", "2025-06-15"]


@pytest.mark.asyncio
async def test_multi_date_creates_one_event(booking_service, details):
    created = await booking_service.create_multi_date_booking(details(), [JUNE_15, JUNE_16, JUNE_17])

    assert [b.date for b in created.bookings] == [JUNE_15, JUNE_16, JUNE_17]
    assert {b.event_id for b in created.bookings} == {created.event.id}


@pytest.mark.asyncio
async def test_multi_date_rejects_empty_and_duplicates(booking_service, details):
    with pytest.raises(ValidationError):
        await booking_service.create_multi_date_booking(details(), [])
    with pytest.raises(ValidationError):
        await booking_service.create_multi_date_booking(details(), [JUNE_15, JUNE_15])


@pytest.mark.asyncio
async def test_transient_store_failure_is_retried(booking_service, details, store):
    store.inject_failure("insert_event", ConnectionResetError("connection reset"), times=2)

    created = await booking_service.create_booking_with_event(details(), JUNE_15)

    assert created.event.id is not None
    assert store.calls["insert_event"] == 3


@pytest.mark.asyncio
async def test_persistent_store_failure_surfaces_classified(booking_service, details, store):
    store.inject_failure("insert_event", TimeoutError("slow"), times=3)

    with pytest.raises(BookingError) as exc_info:
        await booking_service.create_booking_with_event(details(), JUNE_15)

    assert exc_info.value.kind == ErrorKind.TIMEOUT_ERROR
    assert exc_info.value.retryable


@pytest.mark.asyncio
async def test_store_level_overlap_maps_to_conflict_with_dates(booking_service, details, store):
    """A writer that slipped in between check and insert is caught by the store guard."""
    store.inject_failure(
        "insert_bookings",
        StoreError("booking for room 1-21 on 2025-06-15 overlaps existing booking", code="23P01"),
    )

    with pytest.raises(BookingConflictError) as exc_info:
        await booking_service.create_booking_with_event(details(), JUNE_15)

    assert exc_info.value.dates == ["2025-06-15"]
    # The event row stays behind without bookings
    event = await store.get_event(1)
    assert event is not None
    assert await store.list_event_bookings(1) == []


@pytest.mark.asyncio
async def test_check_multi_date_availability(booking_service, details):
    await booking_service.create_booking_with_event(details(), JUNE_16)

    result = await booking_service.check_multi_date_availability(
        [JUNE_15, JUNE_16], time(9, 0), time(10, 0), room_id="1-21"
    )

    assert result.available == [JUNE_15]
    assert result.unavailable == [JUNE_16]


@pytest.mark.asyncio
async def test_update_event_time_excludes_own_bookings(booking_service, details):
    created = await booking_service.create_multi_date_booking(details(start="09:00", end="10:00"), [JUNE_15, JUNE_16])

    updated = await booking_service.update_event(
        created.event.id, {"start_time": time(9, 30), "end_time": time(11, 0)}
    )

    assert (updated.start_time, updated.end_time) == (time(9, 30), time(11, 0))
    listed = await booking_service.list_bookings_for_date(JUNE_16)
    assert listed[0].end_time == time(11, 0)


@pytest.mark.asyncio
async def test_update_event_conflict_lists_dates(booking_service, details):
    created = await booking_service.create_multi_date_booking(details(start="09:00", end="10:00"), [JUNE_15, JUNE_16])
    await booking_service.create_booking_with_event(details(start="10:00", end="11:00", name="Other"), JUNE_16)

    with pytest.raises(BookingConflictError) as exc_info:
        await booking_service.update_event(created.event.id, {"end_time": time(10, 30)})

    assert exc_info.value.dates == ["2025-06-16"]
    event = await booking_service.get_event(created.event.id)
    assert event.event.end_time == time(10, 0)


@pytest.mark.asyncio
async def test_update_event_room_change_is_checked(booking_service, details):
    created = await booking_service.create_booking_with_event(details(room_id="1-21"), JUNE_15)
    await booking_service.create_booking_with_event(details(room_id="1-17"), JUNE_15)

    with pytest.raises(BookingConflictError):
        await booking_service.update_event(created.event.id, {"room_id": "1-17"})


@pytest.mark.asyncio
async def test_update_event_name_skips_availability(booking_service, details, store):
    created = await booking_service.create_booking_with_event(details(), JUNE_15)
    checks_before = store.calls["is_slot_available_for_room"]

    updated = await booking_service.update_event(created.event.id, {"event_name": "Renamed"})

    assert updated.event_name == "Renamed"
    assert store.calls["is_slot_available_for_room"] == checks_before


@pytest.mark.asyncio
async def test_update_event_rejects_inverted_merged_range(booking_service, details):
    created = await booking_service.create_booking_with_event(details(start="09:00", end="10:00"), JUNE_15)
    with pytest.raises(InvalidRangeError):
        await booking_service.update_event(created.event.id, {"start_time": time(10, 30)})


@pytest.mark.asyncio
@pytest.mark.parametrize("end", [time(9, 5), time(21, 30)])
async def test_update_event_checks_merged_duration(booking_service, details, end):
    created = await booking_service.create_booking_with_event(details(start="09:00", end="10:00"), JUNE_15)

    with pytest.raises(ValidationError):
        await booking_service.update_event(created.event.id, {"end_time": end})

    event = await booking_service.get_event(created.event.id)
    assert event.event.end_time == time(10, 0)


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["room_id", "start_time", "end_time", "event_name", "poc_name"])
async def test_update_event_rejects_null_required_field(booking_service, details, store, field):
    created = await booking_service.create_booking_with_event(details(), JUNE_15)

    with pytest.raises(ValidationError):
        await booking_service.update_event(created.event.id, {field: None})

    assert store.calls["update_event"] == 0


@pytest.mark.asyncio
async def test_update_event_clears_optional_fields(booking_service, details):
    created = await booking_service.create_booking_with_event(details(color="#ff0000"), JUNE_15)

    updated = await booking_service.update_event(created.event.id, {"color": None})

    assert updated.color is None


@pytest.mark.asyncio
async def test_update_event_store_conflict_names_booking_dates(booking_service, details, store):
    created = await booking_service.create_multi_date_booking(details(), [JUNE_15, JUNE_16])
    store.inject_failure("update_event", StoreError("overlaps existing booking", code="23P01"))

    with pytest.raises(BookingConflictError) as exc_info:
        await booking_service.update_event(created.event.id, {"end_time": time(11, 0)})

    assert exc_info.value.dates == ["2025-06-15", "2025-06-16"]


@pytest.mark.asyncio
async def test_update_missing_event(booking_service):
    with pytest.raises(BookingNotFoundError):
        await booking_service.update_event(999, {"event_name": "Ghost"})


@pytest.mark.asyncio
async def test_update_booking_date_moves_one_occurrence(booking_service, details):
    created = await booking_service.create_multi_date_booking(details(), [JUNE_15, JUNE_16])
    first = created.bookings[0]

    moved = await booking_service.update_booking_date(first.id, JUNE_17)

    assert moved.date == JUNE_17
    assert moved.event_id == created.event.id
    event = await booking_service.get_event(created.event.id)
    assert [b.date for b in event.bookings] == [JUNE_16, JUNE_17]


@pytest.mark.asyncio
async def test_update_booking_date_conflicts(booking_service, details):
    created = await booking_service.create_booking_with_event(details(), JUNE_15)
    await booking_service.create_booking_with_event(details(start="09:30", end="10:30"), JUNE_16)

    with pytest.raises(BookingConflictError) as exc_info:
        await booking_service.update_booking_date(created.bookings[0].id, JUNE_16)
    assert exc_info.value.dates == ["2025-06-16"]


@pytest.mark.asyncio
async def test_update_booking_date_onto_sibling_date(booking_service, details):
    created = await booking_service.create_multi_date_booking(details(), [JUNE_15, JUNE_16])

    with pytest.raises(BookingConflictError):
        await booking_service.update_booking_date(created.bookings[0].id, JUNE_16)


@pytest.mark.asyncio
async def test_delete_event_removes_all_bookings(booking_service, details, store):
    created = await booking_service.create_multi_date_booking(details(), [JUNE_15, JUNE_16])

    await booking_service.delete_event(created.event.id)

    assert await store.get_event(created.event.id) is None
    assert await booking_service.list_bookings_for_month(2025, 6) == []
    with pytest.raises(BookingNotFoundError):
        await booking_service.get_event(created.event.id)


@pytest.mark.asyncio
async def test_delete_booking_keeps_event(booking_service, details):
    created = await booking_service.create_multi_date_booking(details(), [JUNE_15, JUNE_16])

    await booking_service.delete_booking(created.bookings[0].id)

    event = await booking_service.get_event(created.event.id)
    assert [b.date for b in event.bookings] == [JUNE_16]
    with pytest.raises(BookingNotFoundError):
        await booking_service.delete_booking(created.bookings[0].id)


@pytest.mark.asyncio
async def test_list_bookings_for_month(booking_service, details):
    await booking_service.create_multi_date_booking(details(), [date(2025, 5, 31), JUNE_15, date(2025, 7, 1)])
    await booking_service.create_booking_with_event(details(room_id="1-17"), date(2025, 6, 30))

    june = await booking_service.list_bookings_for_month(2025, 6)
    assert [b.date for b in june] == [JUNE_15, date(2025, 6, 30)]

    june_main = await booking_service.list_bookings_for_month(2025, 6, room_id="1-21")
    assert [b.date for b in june_main] == [JUNE_15]

    with pytest.raises(ValidationError):
        await booking_service.list_bookings_for_month(2025, 13)
