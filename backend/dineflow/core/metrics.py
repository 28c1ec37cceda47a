"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, conflict, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Payment metrics
payment_attempts = Counter(
    'payment_attempts_total',
    'Deposit payment attempts',
    ['result']  # succeeded, declined, unavailable, rejected
)

payment_gateway_latency = Histogram(
    'payment_gateway_latency_seconds',
    'Payment gateway round-trip latency',
    ['operation'],  # charge, refund
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

refunds_total = Counter(
    'refunds_total',
    'Cancellations that returned money to the customer'
)

refund_amount_total = Counter(
    'refund_amount_total',
    'Sum of refunded deposit amounts in currency units'
)

# Lifecycle metrics
booking_transitions = Counter(
    'booking_transitions_total',
    'Booking status transitions',
    ['to_status']
)

# Notification metrics
notifications = Counter(
    'notifications_total',
    'Notification dispatch outcomes',
    ['channel', 'result']  # sent, failed, dropped
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# Convenience functions for instrumentation
def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, conflict, error"""
    booking_attempts.labels(status=status).inc()


def record_payment_attempt(result: str):
    payment_attempts.labels(result=result).inc()


def record_refund(amount: float):
    refunds_total.inc()
    refund_amount_total.inc(amount)


def record_transition(to_status: str):
    booking_transitions.labels(to_status=to_status).inc()


def record_notification(channel: str, result: str):
    notifications.labels(channel=channel, result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
