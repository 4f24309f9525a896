"""
Locust Load Test Suite

Tokens are minted locally with the same SECRET_KEY the API verifies, standing
in for the identity service.

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Race for the last tickets
  locust -f locustfile.py --tags throughput   # Test listing cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import itertools
import random
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

from ticketing.core.security import create_access_token

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None
CONCURRENCY_TICKETS = 10

_user_ids = itertools.count(100_000)


def auth_headers(role: str = "user") -> dict:
    user_id = next(_user_ids)
    token = create_access_token(
        data={
            "sub": str(user_id),
            "name": f"Load User {user_id}",
            "email": f"load_{user_id}@test.com",
            "role": role,
        },
        expires_delta=timedelta(hours=2),
    )
    return {"Authorization": f"Bearer {token}"}


def event_payload(title: str, capacity: int, tickets: int) -> dict:
    future = (datetime.now(timezone.utc) + timedelta(days=random.randint(7, 90))).isoformat()
    return {
        "title": title,
        "description": "Load test event with a single free tier",
        "location": "Load Test Arena",
        "category": "Load",
        "date": future,
        "capacity": capacity,
        "ticket_types": [{"name": "General", "price": "0", "available": tickets}],
        "payment_methods": [{"type": "cash_app", "details": {"username": "$loadtest"}}],
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: concurrency event is created by the first ConcurrencyUser")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> 10 tickets

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT sold FROM ticket_types WHERE event_id = X;          -- 10
      SELECT COUNT(*) FROM registrations WHERE event_id = X;     -- 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = auth_headers()
        self.registered = False

        if not CONCURRENCY_EVENT_ID:
            resp = self.client.post(
                "/api/v1/events/",
                json=event_payload("Concurrency Test Event", 100, CONCURRENCY_TICKETS),
                headers=auth_headers(role="admin"),
            )
            if resp.status_code == 201:
                globals()["CONCURRENCY_EVENT_ID"] = resp.json()["id"]
                print(f"\nCreated event {CONCURRENCY_EVENT_ID} with {CONCURRENCY_TICKETS} tickets\n")

    @tag("concurrency")
    @task
    def register_for_limited_tier(self):
        """All users fight for the same 10 tickets."""
        if not CONCURRENCY_EVENT_ID or self.registered:
            return

        with self.client.post(
            "/api/v1/registrations/",
            json={"event_id": CONCURRENCY_EVENT_ID, "ticket_type": "General", "payment_method": "cash_app"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                self.registered = True
                resp.success()
            elif resp.status_code == 409:
                # SOLD_OUT / EVENT_FULL / ALREADY_REGISTERED are expected outcomes
                self.registered = True
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/events/?page={page}&page_size=20", name="/api/v1/events/ [cached]")

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = auth_headers()

    def _expect(self, resp, allowed):
        if resp.status_code in allowed:
            resp.success()
        else:
            resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        with self.client.post(
            "/api/v1/registrations/",
            json={"event_id": 999999, "ticket_type": "General", "payment_method": "cash_app"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def unknown_ticket_type(self):
        if not EVENT_IDS:
            return
        with self.client.post(
            "/api/v1/registrations/",
            json={"event_id": random.choice(EVENT_IDS), "ticket_type": "No Such Tier", "payment_method": "cash_app"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [400, 409])

    @tag("edge")
    @task
    def mismatched_payment_details(self):
        with self.client.post(
            "/api/v1/registrations/",
            json={
                "event_id": 1,
                "ticket_type": "General",
                "payment_method": "paypal",
                "payment_details": {"method": "cash_app", "cash_app_username": "$nope"},
            },
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/registrations/",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post(
            "/api/v1/registrations/",
            json={"event_id": 1, "ticket_type": "General", "payment_method": "cash_app"},
            catch_response=True,
        ) as resp:
            self._expect(resp, [401])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some registrations and cancellations, rare creates.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = auth_headers()
        self.registration_ids = []

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events/?page=1&page_size=20")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @task(10)
    def register(self):
        if not EVENT_IDS:
            return
        with self.client.post(
            "/api/v1/registrations/",
            json={"event_id": random.choice(EVENT_IDS), "ticket_type": "General", "payment_method": "cash_app"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                self.registration_ids.append(resp.json()["id"])
                resp.success()
            elif resp.status_code in (400, 409):
                resp.success()

    @task(3)
    def cancel(self):
        if self.registration_ids:
            registration_id = self.registration_ids.pop()
            self.client.delete(
                f"/api/v1/registrations/{registration_id}",
                headers=self.headers,
                name="/api/v1/registrations/{id}",
            )

    @task(2)
    def create_event(self):
        resp = self.client.post(
            "/api/v1/events/",
            json=event_payload(f"Event {random.randint(1, 10000)}", random.randint(10, 500), random.randint(10, 500)),
            headers=self.headers,
        )
        if resp.status_code == 201:
            EVENT_IDS.append(resp.json()["id"])
