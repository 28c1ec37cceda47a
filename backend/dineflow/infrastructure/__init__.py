"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .simulated_gateway import SimulatedPaymentGateway
from .stripe_gateway import StripePaymentGateway
from .notifiers import LoggingNotifier, HttpNotifier

__all__ = ['SimulatedPaymentGateway', 'StripePaymentGateway', 'LoggingNotifier', 'HttpNotifier']
