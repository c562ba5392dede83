"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags contention   # Many people, few seats
  locust -f locustfile.py --tags churn        # Confirm/decline/waitlist flapping
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

After a run, verify for every event:
  SELECT confirmed_count FROM events WHERE id = X;
  SELECT COUNT(*) FROM attendees WHERE event_id = X AND status = 'confirmed';
Both numbers must match and stay <= capacity, and
  SELECT waitlist_position FROM attendees WHERE event_id = X AND status = 'waitlisted'
must be exactly 1..k.
"""

import random
import uuid

from locust import HttpUser, between, events, tag, task

CONTENTION_EVENT_ID = None
CHURN_EVENT_ID = None


def new_subject():
    return f"load-{uuid.uuid4().hex[:12]}"


def create_event(client, title, capacity, waitlist_enabled=True):
    resp = client.post(
        "/api/v1/events/",
        json={"title": title, "capacity": capacity, "waitlist_enabled": waitlist_enabled},
    )
    if resp.status_code == 201:
        return resp.json()["id"]
    return None


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: events are created by the first user of each class")
    print("=" * 60)


class ContentionUser(HttpUser):
    """
    TEST 1: 200 people -> 10 seats, waitlist open

    Run: locust -f locustfile.py --tags contention -u 200 -r 100 --run-time 30s

    Expected: 200 (confirmed or waitlisted) or 409 transaction_conflict.
    Anything else is a failure.
    """

    wait_time = between(0, 0.1)

    def on_start(self):
        global CONTENTION_EVENT_ID
        if CONTENTION_EVENT_ID is None:
            CONTENTION_EVENT_ID = create_event(self.client, "Contention Test", capacity=10)
        self.subject_id = new_subject()

    @tag("contention")
    @task
    def rsvp_for_limited_seats(self):
        if not CONTENTION_EVENT_ID:
            return
        with self.client.post(
            f"/api/v1/events/{CONTENTION_EVENT_ID}/attendees/",
            json={"subject_id": self.subject_id},
            name="/api/v1/events/{id}/attendees/ [contention]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            elif resp.status_code == 409 and resp.json().get("retryable"):
                resp.success()  # Expected under contention: caller may retry
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ChurnUser(HttpUser):
    """
    TEST 2: Attendees keep changing their minds on a small event

    Run: locust -f locustfile.py --tags churn -u 50 -r 10 --run-time 60s

    Exercises decrement, waitlist leave/renumber and promotion together.
    """

    wait_time = between(0.1, 0.5)

    def on_start(self):
        global CHURN_EVENT_ID
        if CHURN_EVENT_ID is None:
            CHURN_EVENT_ID = create_event(self.client, "Churn Test", capacity=5)
        self.attendee_id = None
        if CHURN_EVENT_ID:
            resp = self.client.post(
                f"/api/v1/events/{CHURN_EVENT_ID}/attendees/",
                json={"subject_id": new_subject()},
            )
            if resp.status_code == 200:
                self.attendee_id = resp.json()["attendee_id"]

    @tag("churn")
    @task(5)
    def change_mind(self):
        if not self.attendee_id:
            return
        status = random.choice(["confirmed", "declined", "waitlisted"])
        with self.client.patch(
            f"/api/v1/events/{CHURN_EVENT_ID}/attendees/{self.attendee_id}",
            json={"status": status},
            name="/api/v1/events/{id}/attendees/{attendee_id}",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("churn")
    @task(1)
    def promote(self):
        if CHURN_EVENT_ID:
            self.client.post(
                f"/api/v1/events/{CHURN_EVENT_ID}/waitlist/promote",
                name="/api/v1/events/{id}/waitlist/promote",
            )

    @tag("churn", "read")
    @task(2)
    def counts(self):
        if CHURN_EVENT_ID:
            self.client.get(
                f"/api/v1/events/{CHURN_EVENT_ID}/attendees/counts",
                name="/api/v1/events/{id}/attendees/counts",
            )


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """

    wait_time = between(0.5, 1.5)

    def _expect(self, resp, allowed):
        if resp.status_code in allowed:
            resp.success()
        else:
            resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_event(self):
        with self.client.post(
            "/api/v1/events/999999/attendees/",
            json={"subject_id": new_subject()},
            name="/api/v1/events/[missing]/attendees/",
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def invalid_status(self):
        with self.client.post(
            "/api/v1/events/1/attendees/",
            json={"subject_id": new_subject(), "status": "maybe"},
            name="/api/v1/events/{id}/attendees/ [bad status]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def unknown_attendee(self):
        with self.client.patch(
            "/api/v1/events/1/attendees/999999",
            json={"status": "declined"},
            name="/api/v1/events/{id}/attendees/[missing]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/events/1/attendees/",
            data="not json at all",
            name="/api/v1/events/{id}/attendees/ [garbage]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [400, 422])
