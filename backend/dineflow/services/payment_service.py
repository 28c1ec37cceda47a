"""
Deposit payment: drives a pending booking to paid/confirmed.

IDEMPOTENCY AND LOCKING
=======================

  1. Guard: paid bookings fail with AlreadyPaidError; a second real charge
     must never happen. Only pending bookings whose payment is pending or
     failed (retry) can be charged.
  2. Claim: UPDATE bookings SET payment_attempts = n + 1, payment_claimed_at = now
            WHERE id = :id AND payment_attempts = n AND payment_status IN (...)
              AND (payment_claimed_at IS NULL OR payment_claimed_at < now - lease)
     then COMMIT. Same optimistic pattern as a version column: of two
     concurrent calls only one sees rowcount == 1, the other gets a
     ConflictError, and nobody can claim again while the charge is in
     flight. Committing here means no row lock is held while the gateway
     works.
  3. Charge the server-computed deposit (never the client amount) with
     idempotency key booking-{id}-attempt-{n+1}.
  4. Record the outcome and release the claim with an UPDATE keyed by the
     attempt.

Partial failure: if the process dies between 3 and 4 the customer is
charged but the booking still says pending; the claim expires after
PAYMENT_CLAIM_LEASE_SECONDS. The gateway transaction carries booking_id in
its metadata, so a reconciliation pass can match it later.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from dineflow.core.config import get_settings
from dineflow.core.exceptions import (
    AlreadyPaidError,
    ConflictError,
    ForbiddenError,
    GatewayUnavailableError,
    InvalidStateError,
    PaymentError,
)
from dineflow.core.logging import get_logger
from dineflow.core.metrics import payment_gateway_latency, record_payment_attempt, record_transition
from dineflow.models.booking import Booking
from dineflow.schemas.payment import PaymentRequest
from dineflow.services.booking_state import assert_booking_transition, assert_payment_transition
from dineflow.services.interfaces.payment_gateway import PaymentGateway
from dineflow.services.notification_service import NotificationDispatcher, payment_confirmed_messages
from dineflow.services.reservation_service import load_booking

logger = get_logger(__name__)
settings = get_settings()

CHARGEABLE_PAYMENT_STATUSES = ("pending", "failed")


def to_minor_units(amount: Decimal) -> int:
    """Currency units -> integral minor units (x100, rounded half up)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def no_payment_in_flight(now: datetime):
    """WHERE clause: no live payment claim on the booking."""
    lease_expired_before = now - timedelta(seconds=settings.PAYMENT_CLAIM_LEASE_SECONDS)
    return or_(Booking.payment_claimed_at.is_(None), Booking.payment_claimed_at < lease_expired_before)


async def _record_outcome(db: AsyncSession, booking_id: int, attempt: int, **values) -> None:
    await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.payment_attempts == attempt)
        .values(payment_claimed_at=None, **values)
        .execution_options(synchronize_session=False)
    )


async def process_payment(
    db: AsyncSession,
    gateway: PaymentGateway,
    dispatcher: NotificationDispatcher,
    payment: PaymentRequest,
    requesting_user_id: Optional[int] = None,
    is_admin: bool = False,
) -> Booking:
    """
    Charge the booking's deposit and confirm the booking.

    When requesting_user_id is given, only the booking owner or an admin may
    pay.

    Raises NotFoundError, ForbiddenError, AlreadyPaidError, InvalidStateError,
    ConflictError (concurrent attempt) or PaymentError (declined / gateway unreachable).
    A decline is persisted as payment_status=failed before PaymentError is
    raised; unreachability leaves the statuses untouched.
    """
    booking = await load_booking(db, payment.booking_id, with_relations=True)

    if requesting_user_id is not None and booking.user_id != requesting_user_id and not is_admin:
        record_payment_attempt("rejected")
        logger.warning("payment_forbidden", booking_id=booking.id, user_id=requesting_user_id)
        raise ForbiddenError("You can only pay for your own bookings")

    if booking.payment_status == "paid":
        record_payment_attempt("rejected")
        raise AlreadyPaidError("Booking already paid")
    if booking.payment_status not in CHARGEABLE_PAYMENT_STATUSES:
        record_payment_attempt("rejected")
        raise InvalidStateError(f"Cannot take payment for a booking whose payment is {booking.payment_status}")
    assert_booking_transition(booking.booking_status, "confirmed")

    amount_minor = to_minor_units(booking.deposit_amount)
    if payment.amount is not None and payment.amount != amount_minor:
        # Server-computed deposit is authoritative; log and carry on
        logger.warning(
            "payment_amount_mismatch",
            booking_id=booking.id,
            expected=amount_minor,
            received=payment.amount,
        )

    booking_id = booking.id
    restaurant_name = booking.restaurant.name
    user = booking.user
    payment_status = booking.payment_status
    seen_attempts = booking.payment_attempts
    attempt = seen_attempts + 1

    now = datetime.now(timezone.utc)
    claim = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking_id,
            Booking.payment_attempts == seen_attempts,
            Booking.payment_status.in_(CHARGEABLE_PAYMENT_STATUSES),
            Booking.booking_status == "pending",
            no_payment_in_flight(now),
        )
        .values(payment_attempts=attempt, payment_claimed_at=now)
        .execution_options(synchronize_session=False)
    )
    if claim.rowcount == 0:
        await db.rollback()
        record_payment_attempt("rejected")
        logger.info("payment_claim_lost", booking_id=booking_id, attempt=attempt)
        raise ConflictError("A payment for this booking is already in progress")
    # Release the row before the slow network call
    await db.commit()

    try:
        with payment_gateway_latency.labels(operation="charge").time():
            result = await gateway.authorize_and_capture(
                amount_minor_units=amount_minor,
                currency=settings.CURRENCY,
                payment_method_token=payment.payment_method_token,
                metadata={
                    "booking_id": booking_id,
                    "restaurant_id": booking.restaurant_id,
                    "customer_email": booking.customer_email,
                },
                idempotency_key=f"booking-{booking_id}-attempt-{attempt}",
            )
    except GatewayUnavailableError as e:
        await _record_outcome(db, booking_id, attempt)
        await db.commit()
        record_payment_attempt("unavailable")
        logger.error("payment_gateway_unavailable", booking_id=booking_id, attempt=attempt, error=str(e))
        raise PaymentError("Payment gateway is unavailable. Please try again.")

    if not result.succeeded:
        assert_payment_transition(payment_status, "failed")
        await _record_outcome(db, booking_id, attempt, payment_status="failed")
        await db.commit()
        record_payment_attempt("declined")
        logger.warning(
            "payment_declined",
            booking_id=booking_id,
            attempt=attempt,
            reason=result.failure_reason,
        )
        raise PaymentError(f"Payment declined ({result.failure_reason or 'unknown reason'})")

    assert_payment_transition(payment_status, "paid")
    await _record_outcome(
        db,
        booking_id,
        attempt,
        payment_status="paid",
        booking_status="confirmed",
        payment_reference_id=result.transaction_id,
    )
    await db.flush()
    await db.refresh(booking)

    record_payment_attempt("succeeded")
    record_transition("confirmed")
    logger.info(
        "payment_succeeded",
        booking_id=booking_id,
        attempt=attempt,
        amount=amount_minor,
        transaction_id=result.transaction_id,
    )

    dispatcher.dispatch(
        payment_confirmed_messages(booking, restaurant_name, user, admin_email=settings.ADMIN_EMAIL)
    )
    return booking
