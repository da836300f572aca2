"""
Tests for rooms, availability, diagnostics and ops endpoints.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.main import app
from app.core.logging import LogBuffer


@pytest.mark.asyncio
async def test_list_rooms(client: AsyncClient):
    response = await client.get("/api/v1/rooms/")
    assert response.status_code == 200
    rooms = {r["id"]: r for r in response.json()}
    assert set(rooms) == {"1-17", "1-21"}
    assert rooms["1-21"]["capacity"] == 40
    assert rooms["1-17"]["capacity"] == 20


@pytest.mark.asyncio
async def test_availability_per_room(client: AsyncClient, booking_json, future_day):
    await client.post("/api/v1/bookings/", json=booking_json(room_id="1-21"))
    params = {"date": future_day.isoformat(), "start_time": "09:00", "end_time": "10:00"}

    main = await client.get("/api/v1/availability/", params={**params, "room_id": "1-21"})
    training = await client.get("/api/v1/availability/", params={**params, "room_id": "1-17"})

    assert main.status_code == 200
    assert main.json()["available"] is False
    assert training.json()["available"] is True
    assert training.json()["start_time"] == "09:00"


@pytest.mark.asyncio
async def test_availability_with_excluded_event(client: AsyncClient, booking_json, future_day):
    created = (await client.post("/api/v1/bookings/", json=booking_json())).json()
    response = await client.get(
        "/api/v1/availability/",
        params={
            "room_id": "1-21",
            "date": future_day.isoformat(),
            "start_time": "09:30",
            "end_time": "10:30",
            "exclude_event_id": created["event"]["id"],
        },
    )
    assert response.json()["available"] is True


@pytest.mark.asyncio
async def test_availability_uses_fallback_when_predicate_missing(client: AsyncClient, store, booking_json, future_day):
    await client.post("/api/v1/bookings/", json=booking_json())
    store.predicates_enabled = False

    response = await client.get(
        "/api/v1/availability/",
        params={"room_id": "1-21", "date": future_day.isoformat(), "start_time": "09:59", "end_time": "11:00"},
    )
    assert response.status_code == 200
    assert response.json()["available"] is False
    assert store.calls["list_bookings_for_date"] >= 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"date": "2030/01/01", "start_time": "09:00", "end_time": "10:00"},
        {"date": "2030-01-01", "start_time": "9:00", "end_time": "10:00"},
        {"date": "2030-01-01", "start_time": "10:00", "end_time": "10:00"},
    ],
)
async def test_availability_rejects_bad_input(client: AsyncClient, params):
    response = await client.get("/api/v1/availability/", params={"room_id": "1-21", **params})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_multi_date_availability(client: AsyncClient, booking_json, future_day):
    taken = future_day + timedelta(days=2)
    await client.post("/api/v1/bookings/", json=booking_json(date=taken.isoformat()))
    dates = [(future_day + timedelta(days=i)).isoformat() for i in (3, 2, 1)]

    response = await client.post(
        "/api/v1/availability/multi-date",
        json={"dates": dates, "start_time": "09:30", "end_time": "10:30", "room_id": "1-21"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["available"] == [dates[0], dates[2]]
    assert data["unavailable"] == [taken.isoformat()]


@pytest.mark.asyncio
async def test_multi_date_availability_rejects_inverted_range(client: AsyncClient, future_day):
    response = await client.post(
        "/api/v1/availability/multi-date",
        json={"dates": [future_day.isoformat()], "start_time": "11:00", "end_time": "10:00"},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_diagnostics_logs_disabled_by_default(client: AsyncClient):
    response = await client.get("/api/v1/diagnostics/logs")
    assert response.status_code == 200
    assert response.json() == {"enabled": False, "capacity": 0, "entries": []}


@pytest.mark.asyncio
async def test_diagnostics_logs_returns_buffer(client: AsyncClient):
    buffer = LogBuffer(2)
    for n in range(3):
        buffer(None, "info", {"event": f"entry_{n}", "_record": object()})
    app.state.log_buffer = buffer
    try:
        response = await client.get("/api/v1/diagnostics/logs?limit=5")
    finally:
        app.state.log_buffer = None

    data = response.json()
    assert data["enabled"] is True
    assert [e["event"] for e in data["entries"]] == ["entry_1", "entry_2"]


def test_log_buffer_evicts_oldest():
    buffer = LogBuffer(3)
    for n in range(5):
        buffer(None, "info", {"event": n})
    assert len(buffer) == 3
    assert [e["event"] for e in buffer.entries()] == [2, 3, 4]
    assert [e["event"] for e in buffer.entries(limit=1)] == [4]
    buffer.clear()
    assert buffer.entries() == []


@pytest.mark.asyncio
async def test_health_and_metrics(client: AsyncClient, booking_json):
    await client.post("/api/v1/bookings/", json=booking_json())

    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["cache"] == {"status": "disabled"}

    metrics = await client.get("/metrics")
    assert metrics.status_code == 200
    assert "booking_attempts_total" in metrics.text
    assert "availability_checks_total" in metrics.text


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
