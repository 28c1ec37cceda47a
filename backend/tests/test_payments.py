"""
Tests for deposit payment processing.
"""

import asyncio
from decimal import Decimal

import pytest
from httpx import AsyncClient

from dineflow.core.exceptions import ConflictError, AlreadyPaidError
from dineflow.schemas.payment import PaymentRequest
from dineflow.services.payment_service import process_payment, to_minor_units


def _pay(booking_id: int, token: str = "tok_visa", **extra) -> dict:
    return {"booking_id": booking_id, "payment_method_token": token, **extra}


@pytest.mark.asyncio
async def test_payment_confirms_booking(client: AsyncClient, auth_headers, pending_booking, gateway, dispatcher):
    response = await client.post("/api/v1/payments/process", json=_pay(pending_booking["id"]), headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    booking = data["booking"]
    assert booking["payment_status"] == "paid"
    assert booking["booking_status"] == "confirmed"
    assert booking["payment_reference_id"].startswith("sim_pi_")

    assert len(gateway.charges) == 1
    charge = gateway.charges[0]
    assert charge["amount"] == 20000  # 200.00 in minor units
    assert charge["currency"] == "thb"
    assert charge["idempotency_key"] == f"booking-{pending_booking['id']}-attempt-1"
    assert charge["metadata"]["booking_id"] == pending_booking["id"]


@pytest.mark.asyncio
async def test_payment_notifies_customer_and_admin(client: AsyncClient, auth_headers, pending_booking, dispatcher):
    await client.post("/api/v1/payments/process", json=_pay(pending_booking["id"]), headers=auth_headers)

    sent = [(n.channel, n.recipient) for n in dispatcher.sent]
    assert ("sms", "0812345678") in sent
    assert ("email", "somchai@example.com") in sent
    assert ("push", "U1234567890") in sent
    assert ("email", "admin@dineflow.test") in sent


@pytest.mark.asyncio
async def test_second_payment_is_already_paid(client: AsyncClient, auth_headers, paid_booking, gateway):
    """Paying twice never charges twice."""
    response = await client.post("/api/v1/payments/process", json=_pay(paid_booking["id"]), headers=auth_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "already_paid"
    assert len(gateway.charges) == 1


@pytest.mark.asyncio
async def test_declined_payment_marks_failed(client: AsyncClient, auth_headers, pending_booking, fetch_booking, dispatcher):
    response = await client.post(
        "/api/v1/payments/process",
        json=_pay(pending_booking["id"], token="tok_decline_insufficient_funds"),
        headers=auth_headers,
    )
    assert response.status_code == 402
    assert response.json()["error"] == "payment_error"

    booking = await fetch_booking(pending_booking["id"])
    assert booking.payment_status == "failed"
    assert booking.booking_status == "pending"
    assert dispatcher.sent == []


@pytest.mark.asyncio
async def test_retry_after_decline(client: AsyncClient, auth_headers, pending_booking, gateway):
    await client.post(
        "/api/v1/payments/process",
        json=_pay(pending_booking["id"], token="tok_decline"),
        headers=auth_headers,
    )
    response = await client.post("/api/v1/payments/process", json=_pay(pending_booking["id"]), headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["booking"]["payment_status"] == "paid"
    assert [c["idempotency_key"] for c in gateway.charges] == [
        f"booking-{pending_booking['id']}-attempt-1",
        f"booking-{pending_booking['id']}-attempt-2",
    ]


@pytest.mark.asyncio
async def test_gateway_unavailable_leaves_booking_pending(client: AsyncClient, auth_headers, pending_booking, gateway, fetch_booking):
    gateway.unavailable = True
    response = await client.post("/api/v1/payments/process", json=_pay(pending_booking["id"]), headers=auth_headers)
    assert response.status_code == 402

    booking = await fetch_booking(pending_booking["id"])
    assert booking.payment_status == "pending"
    assert booking.booking_status == "pending"

    # Safe to retry once the gateway is back
    gateway.unavailable = False
    response = await client.post("/api/v1/payments/process", json=_pay(pending_booking["id"]), headers=auth_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_amount_mismatch_charges_server_deposit(client: AsyncClient, auth_headers, pending_booking, gateway):
    """The client amount is informational; the stored deposit is charged."""
    response = await client.post(
        "/api/v1/payments/process",
        json=_pay(pending_booking["id"], amount=100),
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert gateway.charges[0]["amount"] == 20000


@pytest.mark.asyncio
async def test_payment_unknown_booking(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/payments/process", json=_pay(9999), headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_payment_for_someone_elses_booking(client: AsyncClient, other_headers, pending_booking, gateway, fetch_booking):
    response = await client.post("/api/v1/payments/process", json=_pay(pending_booking["id"]), headers=other_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"
    assert gateway.charges == []

    booking = await fetch_booking(pending_booking["id"])
    assert booking.payment_status == "pending"
    assert booking.payment_attempts == 0


@pytest.mark.asyncio
async def test_admin_can_pay_any_booking(client: AsyncClient, admin_headers, pending_booking, gateway):
    response = await client.post("/api/v1/payments/process", json=_pay(pending_booking["id"]), headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["booking"]["booking_status"] == "confirmed"
    assert len(gateway.charges) == 1

@pytest.mark.asyncio
async def test_payment_for_cancelled_booking(client: AsyncClient, auth_headers, pending_booking, gateway):
    await client.post(f"/api/v1/bookings/{pending_booking['id']}/cancel", headers=auth_headers)

    response = await client.post("/api/v1/payments/process", json=_pay(pending_booking["id"]), headers=auth_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_state"
    assert gateway.charges == []


@pytest.mark.asyncio
async def test_payment_rejects_unknown_fields(client: AsyncClient, auth_headers, pending_booking):
    response = await client.post(
        "/api/v1/payments/process",
        json=_pay(pending_booking["id"], payment_status="paid"),
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_concurrent_payments_charge_once(session_factory, pending_booking, gateway, dispatcher):
    """Two simultaneous payment calls: one charge, the loser gets a conflict or already-paid."""

    async def _attempt():
        async with session_factory() as session:
            try:
                booking = await process_payment(
                    session, gateway, dispatcher,
                    PaymentRequest(booking_id=pending_booking["id"], payment_method_token="tok_visa"),
                )
                await session.commit()
                return booking
            except Exception:
                await session.rollback()
                raise

    results = await asyncio.gather(_attempt(), _attempt(), return_exceptions=True)

    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], (ConflictError, AlreadyPaidError))
    assert len(gateway.charges) == 1


@pytest.mark.parametrize(
    "amount, minor",
    [
        (Decimal("200"), 20000),
        (Decimal("49.99"), 4999),
        (Decimal("0.005"), 1),
        (Decimal("0"), 0),
    ],
)
def test_to_minor_units(amount, minor):
    assert to_minor_units(amount) == minor
