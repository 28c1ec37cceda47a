"""
Check-in: confirmed -> checked-in, once.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from dineflow.core.exceptions import InvalidStateError
from dineflow.core.logging import get_logger
from dineflow.core.metrics import record_transition
from dineflow.models.booking import Booking
from dineflow.schemas.booking import BookingQrPayload
from dineflow.services.booking_state import assert_booking_transition
from dineflow.services.notification_service import NotificationDispatcher, check_in_messages
from dineflow.services.reservation_service import load_booking

logger = get_logger(__name__)


async def check_in(
    db: AsyncSession,
    dispatcher: NotificationDispatcher,
    booking_id: int,
    now: Optional[datetime] = None,
) -> Booking:
    """Raises NotFoundError, or InvalidStateError unless the booking is confirmed."""
    booking = await load_booking(db, booking_id, with_relations=True)
    assert_booking_transition(booking.booking_status, "checked-in")

    restaurant_name = booking.restaurant.name
    user = booking.user

    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.booking_status == "confirmed")
        .values(booking_status="checked-in", checked_in_at=now or datetime.now(timezone.utc))
    )
    if result.rowcount == 0:
        # Lost the race to a concurrent scan of the same QR code
        raise InvalidStateError("Booking already checked in")

    await db.flush()
    await db.refresh(booking)

    record_transition("checked-in")
    logger.info("booking_checked_in", booking_id=booking.id, restaurant_id=booking.restaurant_id)

    dispatcher.dispatch(check_in_messages(booking, restaurant_name, user))
    return booking


def qr_payload(booking: Booking) -> BookingQrPayload:
    """Data encoded in the check-in QR code shown to restaurant staff."""
    return BookingQrPayload(
        booking_id=booking.id,
        restaurant_id=booking.restaurant_id,
        customer_name=booking.customer_name,
        booking_date=booking.booking_date,
        booking_time=booking.booking_time,
        table_id=booking.table_id,
    )
