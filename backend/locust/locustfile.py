"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test double booking
  locust -f locustfile.py --tags throughput   # Test month listing cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
from datetime import date, timedelta
from locust import HttpUser, task, between, tag, events

ROOM_IDS = ["1-17", "1-21"]

# Shared state
EVENT_IDS = []

# One contested slot for the concurrency scenario: a random day 60-90 days out
RACE_DATE = (date.today() + timedelta(days=random.randint(60, 90))).isoformat()
RACE_ROOM = "1-21"


def future_date(min_days: int = 1, max_days: int = 45) -> str:
    return (date.today() + timedelta(days=random.randint(min_days, max_days))).isoformat()


def random_slot() -> tuple[str, str]:
    start_hour = random.randint(8, 17)
    length = random.choice([1, 2])
    return f"{start_hour:02d}:00", f"{start_hour + length:02d}:00"


def booking_payload(room_id: str, booking_date: str, start: str, end: str) -> dict:
    return {
        "room_id": room_id,
        "date": booking_date,
        "start_time": start,
        "end_time": end,
        "event_name": f"Load Test {random.randint(1, 10000)}",
        "poc_name": "Load Tester",
        "phone_number": "91234567",
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Contested slot: room {RACE_ROOM} on {RACE_DATE} 10:00-11:00")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - N users, one room, one slot

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify at most one booking holds the slot:
      SELECT COUNT(*) FROM bookings b JOIN events e ON e.id = b.event_id
      WHERE e.room_id = '1-21' AND b.date = '<RACE_DATE>'
        AND e.start_time < '11:00' AND e.end_time > '10:00';
    Should be <= 1
    """
    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task
    def book_contested_slot(self):
        """All users fight for the same room, date and hour."""
        with self.client.post(
            "/api/v1/bookings/",
            json=booking_payload(RACE_ROOM, RACE_DATE, "10:00", "11:00"),
            name="/api/v1/bookings/ [contested]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: slot taken
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Month listing cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_month_cached(self):
        """Hammer the cached endpoint."""
        month_start = date.today().replace(day=1) + timedelta(days=32 * random.randint(0, 2))
        room = random.choice(ROOM_IDS + [None])
        url = f"/api/v1/bookings/?year={month_start.year}&month={month_start.month}"
        if room:
            url += f"&room_id={room}"
        self.client.get(url, name="/api/v1/bookings/ [month, cached]")

    @tag("throughput", "read")
    @task(5)
    def check_availability(self):
        """Availability is never cached: always reaches the predicate."""
        start, end = random_slot()
        self.client.get(
            "/api/v1/availability/",
            params={
                "room_id": random.choice(ROOM_IDS),
                "date": future_date(),
                "start_time": start,
                "end_time": end,
            },
            name="/api/v1/availability/",
        )

    @tag("throughput")
    @task(1)
    def health_check(self):
        """Monitor system health."""
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_room(self):
        with self.client.post(
            "/api/v1/bookings/",
            json=booking_payload("9-99", future_date(), "09:00", "10:00"),
            catch_response=True,
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def inverted_time_range(self):
        with self.client.post(
            "/api/v1/bookings/",
            json=booking_payload("1-17", future_date(), "11:00", "10:00"),
            catch_response=True,
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def malformed_date(self):
        with self.client.get(
            "/api/v1/availability/",
            params={"room_id": "1-17", "date": "15/06/2025", "start_time": "09:00", "end_time": "10:00"},
            catch_response=True,
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def past_date(self):
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        with self.client.post(
            "/api/v1/bookings/",
            json=booking_payload("1-17", yesterday, "09:00", "10:00"),
            catch_response=True,
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def too_many_dates(self):
        payload = booking_payload("1-17", future_date(), "09:00", "10:00")
        payload.pop("date")
        payload["dates"] = [future_date(1, 10) for _ in range(5)] + [
            (date.today() + timedelta(days=100 + i)).isoformat() for i in range(31)
        ]
        with self.client.post("/api/v1/bookings/multi-date", json=payload, catch_response=True) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def missing_booking(self):
        with self.client.get(
            "/api/v1/bookings/999999",
            name="/api/v1/bookings/{id} [missing]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def malformed_json(self):
        """Send garbage data."""
        with self.client.post(
            "/api/v1/bookings/",
            data="not json at all",
            catch_response=True,
        ) as resp:
            self._expect(resp, [400, 422])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly calendar browsing
      - Availability checks before booking
      - Occasional single and multi-date bookings
    """
    wait_time = between(1, 3)

    @task(40)
    def browse_month(self):
        today = date.today()
        resp = self.client.get(
            f"/api/v1/bookings/?year={today.year}&month={today.month}",
            name="/api/v1/bookings/ [month]",
        )
        if resp.status_code == 200:
            for booking in resp.json().get("bookings", []):
                if booking["event_id"] not in EVENT_IDS:
                    EVENT_IDS.append(booking["event_id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @task(15)
    def check_then_book(self):
        room = random.choice(ROOM_IDS)
        booking_date = future_date()
        start, end = random_slot()
        resp = self.client.get(
            "/api/v1/availability/",
            params={"room_id": room, "date": booking_date, "start_time": start, "end_time": end},
            name="/api/v1/availability/",
        )
        if resp.status_code == 200 and resp.json()["available"]:
            with self.client.post(
                "/api/v1/bookings/",
                json=booking_payload(room, booking_date, start, end),
                catch_response=True,
            ) as booked:
                if booked.status_code == 201:
                    EVENT_IDS.append(booked.json()["event"]["id"])
                    booked.success()
                elif booked.status_code == 409:
                    booked.success()  # Lost the race between check and insert

    @task(3)
    def book_week(self):
        first = date.today() + timedelta(days=random.randint(7, 60))
        start, end = random_slot()
        payload = booking_payload(random.choice(ROOM_IDS), first.isoformat(), start, end)
        payload.pop("date")
        payload["start_date"] = first.isoformat()
        payload["end_date"] = (first + timedelta(days=4)).isoformat()
        with self.client.post("/api/v1/bookings/multi-date", json=payload, catch_response=True) as resp:
            if resp.status_code == 201:
                EVENT_IDS.append(resp.json()["event"]["id"])
                resp.success()
            elif resp.status_code == 409:
                resp.success()
