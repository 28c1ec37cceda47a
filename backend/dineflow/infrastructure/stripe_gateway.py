"""
Stripe adapter speaking the REST API directly over httpx.

- Charge: POST /v1/payment_intents with confirm=true (authorize + capture)
- Refund: POST /v1/refunds against the PaymentIntent
- Every request carries an Idempotency-Key so a retried call never charges
  or refunds twice

HTTP 402 (card errors) is a decline. Timeouts, connection errors, 429 and
5xx are reported as GatewayUnavailableError.
"""

from typing import Optional

import httpx

from dineflow.core.exceptions import GatewayUnavailableError
from dineflow.core.logging import get_logger
from dineflow.services.interfaces.payment_gateway import ChargeResult, PaymentGateway, RefundResult

logger = get_logger(__name__)


class StripePaymentGateway(PaymentGateway):

    def __init__(
        self,
        secret_key: str,
        api_base: str = "https://api.stripe.com",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=api_base,
            auth=(secret_key, ""),
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, data: dict, idempotency_key: str) -> httpx.Response:
        try:
            response = await self._client.post(
                path,
                data=data,
                headers={"Idempotency-Key": idempotency_key},
            )
        except httpx.HTTPError as e:
            logger.error("stripe_request_failed", path=path, error=str(e))
            raise GatewayUnavailableError(str(e)) from e

        if response.status_code == 429 or response.status_code >= 500:
            logger.error("stripe_unavailable", path=path, status_code=response.status_code)
            raise GatewayUnavailableError(f"Stripe returned HTTP {response.status_code}")
        return response

    @staticmethod
    def _error_code(response: httpx.Response) -> str:
        try:
            error = response.json().get("error", {})
        except ValueError:
            return f"http_{response.status_code}"
        return error.get("decline_code") or error.get("code") or error.get("type") or "declined"

    async def authorize_and_capture(
        self,
        amount_minor_units: int,
        currency: str,
        payment_method_token: str,
        metadata: dict,
        idempotency_key: str,
    ) -> ChargeResult:
        data = {
            "amount": str(amount_minor_units),
            "currency": currency,
            "payment_method": payment_method_token,
            "confirm": "true",
            "automatic_payment_methods[enabled]": "true",
            "automatic_payment_methods[allow_redirects]": "never",
        }
        for key, value in metadata.items():
            data[f"metadata[{key}]"] = str(value)

        response = await self._post("/v1/payment_intents", data, idempotency_key)
        if response.status_code >= 400:
            return ChargeResult(status="failed", failure_reason=self._error_code(response))

        intent = response.json()
        if intent.get("status") == "succeeded":
            return ChargeResult(status="succeeded", transaction_id=intent["id"])
        return ChargeResult(
            status="failed",
            transaction_id=intent.get("id"),
            failure_reason=intent.get("status"),
        )

    async def refund(
        self,
        transaction_id: str,
        amount_minor_units: int,
        idempotency_key: str,
    ) -> RefundResult:
        data = {"payment_intent": transaction_id, "amount": str(amount_minor_units)}
        response = await self._post("/v1/refunds", data, idempotency_key)
        if response.status_code >= 400:
            return RefundResult(status="failed", failure_reason=self._error_code(response))

        refund = response.json()
        if refund.get("status") in ("succeeded", "pending"):
            return RefundResult(status="succeeded", refund_id=refund.get("id"))
        return RefundResult(status="failed", refund_id=refund.get("id"), failure_reason=refund.get("status"))
