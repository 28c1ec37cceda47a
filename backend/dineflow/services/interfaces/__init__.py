"""
Service interfaces for dependency inversion.
Allows swapping payment and messaging providers without changing booking logic.
"""

from .payment_gateway import PaymentGateway, ChargeResult, RefundResult
from .notifier import Notifier, Notification

__all__ = ['PaymentGateway', 'ChargeResult', 'RefundResult', 'Notifier', 'Notification']
