"""
Booking lifecycle state machine.

    pending -> confirmed -> checked-in
    pending | confirmed -> cancelled
    pending | confirmed -> no-show      (administrative)

cancelled, checked-in and no-show are terminal. Payment has its own
sub-state: pending -> paid -> refunded and pending -> failed; a failed
payment may be attempted again, which is why failed keeps the paid/failed
edges.
"""

from dineflow.core.exceptions import InvalidStateError

BOOKING_TRANSITIONS = {
    "pending": {"confirmed", "cancelled", "no-show"},
    "confirmed": {"checked-in", "cancelled", "no-show"},
    "checked-in": set(),
    "cancelled": set(),
    "no-show": set(),
}

PAYMENT_TRANSITIONS = {
    "pending": {"paid", "failed"},
    "failed": {"paid", "failed"},
    "paid": {"refunded"},
    "refunded": set(),
}


def can_transition(current: str, target: str) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, set())


def assert_booking_transition(current: str, target: str) -> None:
    if current == target == "checked-in":
        raise InvalidStateError("Booking already checked in")
    if current == target == "cancelled":
        raise InvalidStateError("Booking already cancelled")
    if not can_transition(current, target):
        raise InvalidStateError(f"Invalid booking transition: {current} -> {target}")


def assert_payment_transition(current: str, target: str) -> None:
    if target not in PAYMENT_TRANSITIONS.get(current, set()):
        raise InvalidStateError(f"Invalid payment transition: {current} -> {target}")


def sources_for(target: str) -> tuple[str, ...]:
    """Booking statuses from which `target` is reachable, for conditional UPDATEs."""
    return tuple(s for s, targets in BOOKING_TRANSITIONS.items() if target in targets)
