"""
Payment gateway interface.
Only the semantic contract the booking core needs: charge an amount, refund an amount.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ChargeResult:
    status: str  # succeeded | failed
    transaction_id: Optional[str] = None
    failure_reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


@dataclass(frozen=True)
class RefundResult:
    status: str  # succeeded | failed
    refund_id: Optional[str] = None
    failure_reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


class PaymentGateway(ABC):
    """
    Interface for payment providers.

    Implementations:
    - SimulatedPaymentGateway: in-process, for development
    - StripePaymentGateway: Stripe PaymentIntents/Refunds over HTTPS

    Both methods take integral minor currency units. A decline is reported
    as a result with status "failed"; a transport failure raises
    GatewayUnavailableError so callers can leave local state untouched.
    """

    @abstractmethod
    async def authorize_and_capture(
        self,
        amount_minor_units: int,
        currency: str,
        payment_method_token: str,
        metadata: dict,
        idempotency_key: str,
    ) -> ChargeResult:
        pass

    @abstractmethod
    async def refund(
        self,
        transaction_id: str,
        amount_minor_units: int,
        idempotency_key: str,
    ) -> RefundResult:
        pass

    async def close(self) -> None:
        """Release network resources, if any."""
