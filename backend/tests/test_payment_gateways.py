"""
Tests for the payment gateway adapters.
"""

from urllib.parse import parse_qs

import httpx
import pytest

from dineflow.core.exceptions import GatewayUnavailableError
from dineflow.infrastructure.simulated_gateway import SimulatedPaymentGateway
from dineflow.infrastructure.stripe_gateway import StripePaymentGateway


@pytest.mark.asyncio
async def test_simulated_gateway_is_idempotent():
    gateway = SimulatedPaymentGateway()
    first = await gateway.authorize_and_capture(10000, "thb", "tok_visa", {"booking_id": 1}, "booking-1-attempt-1")
    second = await gateway.authorize_and_capture(10000, "thb", "tok_visa", {"booking_id": 1}, "booking-1-attempt-1")
    assert first.succeeded
    assert first == second


@pytest.mark.asyncio
async def test_simulated_gateway_declines_and_refunds():
    gateway = SimulatedPaymentGateway()
    declined = await gateway.authorize_and_capture(100, "thb", "tok_decline", {}, "k1")
    assert not declined.succeeded
    assert declined.failure_reason == "card_declined"

    charge = await gateway.authorize_and_capture(10000, "thb", "tok_visa", {}, "k2")
    assert (await gateway.refund(charge.transaction_id, 5000, "r1")).succeeded
    # Only 5000 left to refund
    assert not (await gateway.refund(charge.transaction_id, 6000, "r2")).succeeded


def _stripe(handler) -> StripePaymentGateway:
    return StripePaymentGateway(secret_key="sk_test_123", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_stripe_charge_success():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["idempotency_key"] = request.headers["Idempotency-Key"]
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"id": "pi_123", "status": "succeeded"})

    gateway = _stripe(handler)
    result = await gateway.authorize_and_capture(20000, "thb", "pm_card_visa", {"booking_id": 5}, "booking-5-attempt-1")
    await gateway.close()

    assert result.succeeded
    assert result.transaction_id == "pi_123"
    assert seen["path"] == "/v1/payment_intents"
    assert seen["idempotency_key"] == "booking-5-attempt-1"
    assert seen["form"]["amount"] == ["20000"]
    assert seen["form"]["confirm"] == ["true"]
    assert seen["form"]["metadata[booking_id]"] == ["5"]


@pytest.mark.asyncio
async def test_stripe_card_error_is_decline():
    gateway = _stripe(lambda r: httpx.Response(
        402, json={"error": {"type": "card_error", "code": "card_declined", "decline_code": "insufficient_funds"}}
    ))
    result = await gateway.authorize_and_capture(20000, "thb", "pm_card_chargeDeclined", {}, "k")
    await gateway.close()

    assert not result.succeeded
    assert result.failure_reason == "insufficient_funds"


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [429, 500, 503])
async def test_stripe_server_errors_are_unavailable(status_code):
    gateway = _stripe(lambda r: httpx.Response(status_code, json={}))
    with pytest.raises(GatewayUnavailableError):
        await gateway.authorize_and_capture(20000, "thb", "pm_card_visa", {}, "k")
    await gateway.close()


@pytest.mark.asyncio
async def test_stripe_transport_error_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    gateway = _stripe(handler)
    with pytest.raises(GatewayUnavailableError):
        await gateway.refund("pi_123", 100, "booking-1-refund")
    await gateway.close()


@pytest.mark.asyncio
async def test_stripe_refund():
    def handler(request: httpx.Request) -> httpx.Response:
        form = parse_qs(request.content.decode())
        assert request.url.path == "/v1/refunds"
        assert form["payment_intent"] == ["pi_123"]
        assert form["amount"] == ["5000"]
        return httpx.Response(200, json={"id": "re_1", "status": "succeeded"})

    gateway = _stripe(handler)
    result = await gateway.refund("pi_123", 5000, "booking-1-refund")
    await gateway.close()

    assert result.succeeded
    assert result.refund_id == "re_1"
