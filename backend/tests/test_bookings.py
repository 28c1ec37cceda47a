"""
Tests for booking creation, history and detail endpoints.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient

from dineflow.services.reservation_service import compute_deposit


@pytest.mark.asyncio
async def test_create_booking(client: AsyncClient, auth_headers, booking_payload, test_user):
    """Party of 2 at 100 per person: pending booking with a 200 deposit."""
    response = await client.post("/api/v1/bookings/", json=booking_payload(), headers=auth_headers)
    assert response.status_code == 201
    data = response.json()
    assert Decimal(data["deposit_amount"]) == Decimal("200")
    assert data["restaurant_name"] == "Test Bistro"
    assert data["table"] == {"table_id": "T01", "capacity": 2, "type": "window"}

    booking = data["booking"]
    assert booking["id"] == data["booking_id"]
    assert booking["user_id"] == test_user.id
    assert booking["booking_status"] == "pending"
    assert booking["payment_status"] == "pending"
    assert booking["payment_reference_id"] is None
    assert booking["refund_amount"] is None


@pytest.mark.asyncio
async def test_create_booking_unauthenticated(client: AsyncClient, booking_payload):
    response = await client.post("/api/v1/bookings/", json=booking_payload())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_booking_same_slot_conflicts(client: AsyncClient, auth_headers, other_headers, booking_payload):
    """A second booking of the same table slot returns 409, even from another user."""
    first = await client.post("/api/v1/bookings/", json=booking_payload(), headers=auth_headers)
    assert first.status_code == 201

    second = await client.post("/api/v1/bookings/", json=booking_payload(), headers=other_headers)
    assert second.status_code == 409
    assert second.json()["error"] == "conflict"


@pytest.mark.asyncio
async def test_create_booking_after_cancellation(client: AsyncClient, auth_headers, booking_payload, pending_booking):
    """A cancelled booking no longer blocks its slot."""
    await client.post(f"/api/v1/bookings/{pending_booking['id']}/cancel", headers=auth_headers)

    response = await client.post("/api/v1/bookings/", json=booking_payload(), headers=auth_headers)
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_create_booking_other_table_same_time(client: AsyncClient, auth_headers, booking_payload, pending_booking):
    response = await client.post("/api/v1/bookings/", json=booking_payload(table_id="T02"), headers=auth_headers)
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_create_booking_over_capacity(client: AsyncClient, auth_headers, booking_payload):
    """T01 seats 2; a party of 3 is a validation error whether or not it is free."""
    response = await client.post("/api/v1/bookings/", json=booking_payload(num_guests=3), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
@pytest.mark.parametrize("num_guests", [0, -1])
async def test_create_booking_non_positive_guests(client: AsyncClient, auth_headers, booking_payload, num_guests):
    response = await client.post(
        "/api/v1/bookings/", json=booking_payload(num_guests=num_guests), headers=auth_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["table_id", "customer_name", "customer_email", "customer_phone", "booking_date"])
async def test_create_booking_missing_field(client: AsyncClient, auth_headers, booking_payload, field):
    payload = booking_payload()
    del payload[field]
    response = await client.post("/api/v1/bookings/", json=payload, headers=auth_headers)
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_create_booking_blank_name(client: AsyncClient, auth_headers, booking_payload):
    response = await client.post(
        "/api/v1/bookings/", json=booking_payload(customer_name="   "), headers=auth_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_booking_rejects_unknown_fields(client: AsyncClient, auth_headers, booking_payload):
    """Clients cannot set server-owned fields like the deposit."""
    response = await client.post(
        "/api/v1/bookings/", json=booking_payload(deposit_amount=1), headers=auth_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_booking_unknown_restaurant(client: AsyncClient, auth_headers, booking_payload):
    response = await client.post(
        "/api/v1/bookings/", json=booking_payload(restaurant_id=9999), headers=auth_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_booking_unknown_table(client: AsyncClient, auth_headers, booking_payload):
    response = await client.post(
        "/api/v1/bookings/", json=booking_payload(table_id="X99"), headers=auth_headers
    )
    assert response.status_code == 404


@pytest.mark.parametrize("num_guests", [1, 2, 3, 7, 50])
def test_compute_deposit(num_guests):
    assert compute_deposit(Decimal("100.00"), num_guests) == Decimal(100 * num_guests)
    assert compute_deposit(Decimal("49.50"), num_guests) == Decimal("49.50") * num_guests


@pytest.mark.asyncio
async def test_booking_history_newest_first(client: AsyncClient, auth_headers, other_headers, booking_payload):
    await client.post("/api/v1/bookings/", json=booking_payload(), headers=auth_headers)
    await client.post("/api/v1/bookings/", json=booking_payload(table_id="T02"), headers=auth_headers)
    await client.post("/api/v1/bookings/", json=booking_payload(booking_time="20:00:00"), headers=other_headers)

    response = await client.get("/api/v1/bookings/", headers=auth_headers)
    assert response.status_code == 200
    assert [b["table_id"] for b in response.json()] == ["T02", "T01"]


@pytest.mark.asyncio
async def test_get_booking_owner_only(client: AsyncClient, auth_headers, other_headers, admin_headers, pending_booking):
    url = f"/api/v1/bookings/{pending_booking['id']}"

    assert (await client.get(url, headers=auth_headers)).status_code == 200
    assert (await client.get(url, headers=admin_headers)).status_code == 200

    response = await client.get(url, headers=other_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


@pytest.mark.asyncio
async def test_get_booking_not_found(client: AsyncClient, auth_headers):
    response = await client.get("/api/v1/bookings/9999", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_booking_qr_payload(client: AsyncClient, auth_headers, pending_booking):
    response = await client.get(f"/api/v1/bookings/{pending_booking['id']}/qr", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {
        "booking_id": pending_booking["id"],
        "restaurant_id": pending_booking["restaurant_id"],
        "customer_name": "Somchai Test",
        "booking_date": pending_booking["booking_date"],
        "booking_time": pending_booking["booking_time"],
        "table_id": "T01",
    }
