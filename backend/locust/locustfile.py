"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test double booking of one table slot
  locust -f locustfile.py --tags throughput   # Test restaurant list cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

Needs a server started with SEED_SAMPLE_DATA=true and PAYMENT_GATEWAY=simulated.
"""

import random
import string
from locust import HttpUser, task, between, tag, events
from datetime import date, timedelta

PASSWORD = "loadtest123"

# Every ConcurrencyUser fights for this one slot
RACE_RESTAURANT_ID = 1
RACE_TABLE_ID = "T01"
RACE_DATE = (date.today() + timedelta(days=30)).isoformat()
RACE_TIME = "19:00"

RESTAURANT_IDS = []


def random_email():
    return f"load_{random.randint(10000, 99999)}_{random.randint(0, 999)}@test.com"


def random_username():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def register_and_login(client):
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "username": random_username(),
        "password": PASSWORD,
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}
    return {}


def booking_payload(restaurant_id, table_id, booking_date, booking_time, guests=2):
    return {
        "restaurant_id": restaurant_id,
        "table_id": table_id,
        "booking_date": booking_date,
        "booking_time": booking_time,
        "num_guests": guests,
        "customer_name": "Load Tester",
        "customer_email": "load@test.com",
        "customer_phone": "0812345678",
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Race slot: restaurant {RACE_RESTAURANT_ID}, table {RACE_TABLE_ID}, {RACE_DATE} {RACE_TIME}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> 1 table slot

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings
      WHERE restaurant_id = 1 AND table_id = 'T01'
        AND booking_status IN ('pending', 'confirmed');
    Should be exactly 1
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = register_and_login(self.client)

    @tag("concurrency")
    @task
    def book_same_slot(self):
        """All users fight for the same table at the same time."""
        if not self.headers:
            return

        with self.client.post(
            "/api/v1/bookings/",
            json=booking_payload(RACE_RESTAURANT_ID, RACE_TABLE_ID, RACE_DATE, RACE_TIME),
            headers=self.headers,
            catch_response=True,
            name="/api/v1/bookings/ [race]",
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: slot already taken
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: Stop Redis, run again
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_restaurants_cached(self):
        resp = self.client.get("/api/v1/restaurants/", name="/api/v1/restaurants/ [cached]")
        if resp.status_code == 200:
            for restaurant in resp.json().get("restaurants", []):
                if restaurant["id"] not in RESTAURANT_IDS:
                    RESTAURANT_IDS.append(restaurant["id"])

    @tag("throughput", "read")
    @task(5)
    def check_availability(self):
        """Never cached; always hits the database."""
        if RESTAURANT_IDS:
            self.client.get(
                f"/api/v1/restaurants/{random.choice(RESTAURANT_IDS)}/tables/available",
                params={"date": RACE_DATE, "time": "18:00", "guests": 2},
                name="/api/v1/restaurants/{id}/tables/available",
            )

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
        self.headers = register_and_login(self.client)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_restaurant(self):
        with self.client.post(
            "/api/v1/bookings/",
            json=booking_payload(999999, "T01", RACE_DATE, "12:00"),
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def zero_guests(self):
        with self.client.post(
            "/api/v1/bookings/",
            json=booking_payload(RACE_RESTAURANT_ID, "T02", RACE_DATE, "12:00", guests=0),
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def party_too_large(self):
        with self.client.post(
            "/api/v1/bookings/",
            json=booking_payload(RACE_RESTAURANT_ID, "T01", RACE_DATE, "12:30", guests=12),
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (400,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings/",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def pay_unknown_booking(self):
        with self.client.post(
            "/api/v1/payments/process",
            json={"booking_id": 999999, "payment_method_token": "tok_visa"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post(
            "/api/v1/bookings/",
            json=booking_payload(RACE_RESTAURANT_ID, "T02", RACE_DATE, "12:00"),
            catch_response=True,
        ) as resp:
            self._expect(resp, (401,))


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Browse, check availability, book a random slot, pay, sometimes cancel.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = register_and_login(self.client)

    @task(50)
    def browse_restaurants(self):
        resp = self.client.get("/api/v1/restaurants/")
        if resp.status_code == 200:
            for restaurant in resp.json().get("restaurants", []):
                if restaurant["id"] not in RESTAURANT_IDS:
                    RESTAURANT_IDS.append(restaurant["id"])

    @task(20)
    def view_history(self):
        if self.headers:
            self.client.get("/api/v1/bookings/", headers=self.headers)

    @task(10)
    def book_pay_maybe_cancel(self):
        if not RESTAURANT_IDS or not self.headers:
            return

        restaurant_id = random.choice(RESTAURANT_IDS)
        booking_date = (date.today() + timedelta(days=random.randint(1, 60))).isoformat()
        booking_time = random.choice(["11:00", "12:00", "18:00", "19:00", "20:00"])

        resp = self.client.get(
            f"/api/v1/restaurants/{restaurant_id}/tables/available",
            params={"date": booking_date, "time": booking_time, "guests": 2},
            name="/api/v1/restaurants/{id}/tables/available",
        )
        if resp.status_code != 200 or not resp.json():
            return

        table_id = random.choice(resp.json())["table_id"]
        resp = self.client.post(
            "/api/v1/bookings/",
            json=booking_payload(restaurant_id, table_id, booking_date, booking_time),
            headers=self.headers,
        )
        if resp.status_code != 201:
            return

        booking_id = resp.json()["booking_id"]
        self.client.post(
            "/api/v1/payments/process",
            json={"booking_id": booking_id, "payment_method_token": "tok_visa"},
            headers=self.headers,
        )
        if random.random() < 0.2:
            self.client.post(
                f"/api/v1/bookings/{booking_id}/cancel",
                headers=self.headers,
                name="/api/v1/bookings/{id}/cancel",
            )
