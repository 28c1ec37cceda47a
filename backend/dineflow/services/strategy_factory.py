"""
Collaborator factory.
Configures which payment gateway and notifier implementation the API uses.
Both are process-wide singletons exposed as FastAPI dependencies so tests
can override them.
"""

from typing import Optional

from dineflow.core.config import get_settings
from dineflow.core.logging import get_logger
from dineflow.infrastructure.notifiers import HttpNotifier, LoggingNotifier
from dineflow.infrastructure.simulated_gateway import SimulatedPaymentGateway
from dineflow.infrastructure.stripe_gateway import StripePaymentGateway
from dineflow.services.interfaces.notifier import Notifier
from dineflow.services.interfaces.payment_gateway import PaymentGateway
from dineflow.services.notification_service import NotificationDispatcher

logger = get_logger(__name__)

_gateway: Optional[PaymentGateway] = None
_dispatcher: Optional[NotificationDispatcher] = None


def build_payment_gateway() -> PaymentGateway:
    """
    Strategy selection via PAYMENT_GATEWAY:
    - simulated: in-process gateway (default, development)
    - stripe: Stripe REST API
    """
    settings = get_settings()
    if settings.PAYMENT_GATEWAY == "stripe":
        if not settings.STRIPE_SECRET_KEY:
            raise RuntimeError("PAYMENT_GATEWAY=stripe requires STRIPE_SECRET_KEY")
        return StripePaymentGateway(
            secret_key=settings.STRIPE_SECRET_KEY,
            api_base=settings.STRIPE_API_BASE,
            timeout=settings.PAYMENT_GATEWAY_TIMEOUT,
        )
    return SimulatedPaymentGateway()


def build_notifier() -> Notifier:
    settings = get_settings()
    if settings.NOTIFIER == "http":
        return HttpNotifier(settings)
    return LoggingNotifier()


def get_payment_gateway() -> PaymentGateway:
    global _gateway
    if _gateway is None:
        _gateway = build_payment_gateway()
        logger.info("payment_gateway_selected", gateway=type(_gateway).__name__)
    return _gateway


def get_notification_dispatcher() -> NotificationDispatcher:
    global _dispatcher
    if _dispatcher is None:
        settings = get_settings()
        _dispatcher = NotificationDispatcher(
            build_notifier(),
            max_queue_size=settings.NOTIFICATION_QUEUE_SIZE,
        )
    return _dispatcher


async def close_collaborators() -> None:
    global _gateway, _dispatcher
    if _dispatcher is not None:
        await _dispatcher.stop()
        _dispatcher = None
    if _gateway is not None:
        await _gateway.close()
        _gateway = None
