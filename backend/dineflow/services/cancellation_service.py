"""
Cancellation with prorated deposit refund.

Refund policy, evaluated at the moment of cancellation:
- 24 hours or more before the reservation: full deposit
- less than 24 hours: floor(deposit * hours_left / 24), never below zero
  (a cancellation after the slot has started refunds nothing)

Only a paid deposit is refunded. An unpaid booking is cancelled with a
refund of 0 and its payment status left as it was.
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_FLOOR
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from dineflow.core.config import get_settings
from dineflow.core.exceptions import ForbiddenError, GatewayUnavailableError, InvalidStateError, PaymentError
from dineflow.core.logging import get_logger
from dineflow.core.metrics import payment_gateway_latency, record_refund, record_transition
from dineflow.models.booking import Booking
from dineflow.services.booking_state import assert_booking_transition, assert_payment_transition, sources_for
from dineflow.services.interfaces.payment_gateway import PaymentGateway
from dineflow.services.notification_service import NotificationDispatcher, cancellation_messages
from dineflow.services.payment_service import no_payment_in_flight, to_minor_units
from dineflow.services.reservation_service import load_booking

logger = get_logger(__name__)
settings = get_settings()

SECONDS_PER_HOUR = Decimal(3600)


def booking_starts_at(booking: Booking) -> datetime:
    """Reservation start as an aware datetime in the restaurants' timezone."""
    return datetime.combine(booking.booking_date, booking.booking_time, tzinfo=ZoneInfo(settings.TIMEZONE))


def calculate_refund(
    deposit_amount: Decimal,
    starts_at: datetime,
    now: datetime,
    full_refund_hours: int = 24,
) -> Decimal:
    deposit = Decimal(deposit_amount)
    diff_hours = Decimal(str((starts_at - now).total_seconds())) / SECONDS_PER_HOUR
    if diff_hours >= full_refund_hours:
        return deposit

    prorated = (deposit * diff_hours / full_refund_hours).to_integral_value(rounding=ROUND_FLOOR)
    return max(Decimal(0), prorated)


async def cancel_booking(
    db: AsyncSession,
    gateway: PaymentGateway,
    dispatcher: NotificationDispatcher,
    booking_id: int,
    requesting_user_id: int,
    is_admin: bool = False,
    now: Optional[datetime] = None,
) -> tuple[Booking, Decimal]:
    """
    Cancel a booking and refund its deposit pro rata.

    Raises NotFoundError, ForbiddenError, InvalidStateError (terminal or
    concurrently changed booking) or PaymentError (refund failed; nothing
    is changed locally).
    """
    booking = await load_booking(db, booking_id, with_relations=True)

    if booking.user_id != requesting_user_id and not is_admin:
        logger.warning("cancel_forbidden", booking_id=booking_id, user_id=requesting_user_id)
        raise ForbiddenError("You can only cancel your own bookings")

    assert_booking_transition(booking.booking_status, "cancelled")

    now = now or datetime.now(timezone.utc)
    restaurant_name = booking.restaurant.name
    user = booking.user
    was_paid = booking.payment_status == "paid"

    refund_amount = Decimal(0)
    refund_issued = False
    refund_id = None
    if was_paid:
        assert_payment_transition(booking.payment_status, "refunded")
        refund_amount = calculate_refund(
            booking.deposit_amount,
            booking_starts_at(booking),
            now,
            full_refund_hours=settings.FULL_REFUND_WINDOW_HOURS,
        )

    if was_paid and booking.payment_reference_id and refund_amount > 0:
        try:
            with payment_gateway_latency.labels(operation="refund").time():
                refund = await gateway.refund(
                    transaction_id=booking.payment_reference_id,
                    amount_minor_units=to_minor_units(refund_amount),
                    idempotency_key=f"booking-{booking.id}-refund",
                )
        except GatewayUnavailableError as e:
            logger.error("refund_gateway_unavailable", booking_id=booking.id, error=str(e))
            raise PaymentError("Payment gateway is unavailable. Please try again.")
        if not refund.succeeded:
            logger.error("refund_failed", booking_id=booking.id, reason=refund.failure_reason)
            raise PaymentError(f"Refund failed ({refund.failure_reason or 'unknown reason'})")
        refund_issued = True
        refund_id = refund.refund_id

    values = {
        "booking_status": "cancelled",
        "cancelled_at": now,
        "refund_amount": refund_amount,
    }
    if was_paid:
        values["payment_status"] = "refunded"

    result = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking.id,
            Booking.booking_status.in_(sources_for("cancelled")),
            Booking.payment_status == booking.payment_status,
            no_payment_in_flight(datetime.now(timezone.utc)),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        if refund_issued:
            # Money already went back; leave a trail for reconciliation
            logger.error(
                "refund_issued_but_not_recorded",
                booking_id=booking.id,
                payment_reference_id=booking.payment_reference_id,
                refund_id=refund_id,
                refund=str(refund_amount),
            )
        raise InvalidStateError("Booking changed concurrently or has a payment in progress; please reload it")

    await db.flush()
    await db.refresh(booking)

    record_transition("cancelled")
    if refund_amount > 0:
        record_refund(float(refund_amount))
    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        user_id=requesting_user_id,
        by_admin=is_admin and booking.user_id != requesting_user_id,
        refund=str(refund_amount),
        was_paid=was_paid,
    )

    dispatcher.dispatch(cancellation_messages(booking, restaurant_name, user, refund_amount))
    return booking, refund_amount
