"""
In-process payment gateway for development and demos.

Charges always succeed unless the payment method token starts with one of
the decline prefixes. Repeated calls with the same idempotency key return
the first result, mirroring what a real provider does.
"""

import uuid

from dineflow.services.interfaces.payment_gateway import ChargeResult, PaymentGateway, RefundResult
from dineflow.core.logging import get_logger

logger = get_logger(__name__)

DECLINE_PREFIXES = ("tok_decline", "pm_card_chargeDeclined")


class SimulatedPaymentGateway(PaymentGateway):

    def __init__(self):
        self._charges: dict[str, ChargeResult] = {}
        self._captured: dict[str, int] = {}
        self._refunds: dict[str, RefundResult] = {}

    async def authorize_and_capture(
        self,
        amount_minor_units: int,
        currency: str,
        payment_method_token: str,
        metadata: dict,
        idempotency_key: str,
    ) -> ChargeResult:
        if idempotency_key in self._charges:
            return self._charges[idempotency_key]

        if payment_method_token.startswith(DECLINE_PREFIXES):
            result = ChargeResult(status="failed", failure_reason="card_declined")
        else:
            transaction_id = f"sim_pi_{uuid.uuid4().hex[:16]}"
            self._captured[transaction_id] = amount_minor_units
            result = ChargeResult(status="succeeded", transaction_id=transaction_id)

        self._charges[idempotency_key] = result
        logger.info(
            "simulated_charge",
            amount=amount_minor_units,
            currency=currency,
            status=result.status,
            booking_id=metadata.get("booking_id"),
        )
        return result

    async def refund(
        self,
        transaction_id: str,
        amount_minor_units: int,
        idempotency_key: str,
    ) -> RefundResult:
        if idempotency_key in self._refunds:
            return self._refunds[idempotency_key]

        captured = self._captured.get(transaction_id)
        if captured is None or amount_minor_units > captured:
            result = RefundResult(status="failed", failure_reason="invalid_refund")
        else:
            self._captured[transaction_id] = captured - amount_minor_units
            result = RefundResult(status="succeeded", refund_id=f"sim_re_{uuid.uuid4().hex[:16]}")

        self._refunds[idempotency_key] = result
        logger.info(
            "simulated_refund",
            transaction_id=transaction_id,
            amount=amount_minor_units,
            status=result.status,
        )
        return result
