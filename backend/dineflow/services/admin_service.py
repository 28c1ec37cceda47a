"""
Administrative booking operations: filtered listing and status override.

The override goes through the same state machine as the customer flows, so
an admin can mark a pending/confirmed booking as no-show or confirm it, but
cannot resurrect a cancelled or checked-in one. Cancellation by an admin goes
through cancellation_service so the deposit is refunded.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from dineflow.core.exceptions import InvalidStateError
from dineflow.core.logging import get_logger
from dineflow.core.metrics import record_transition
from dineflow.models.booking import Booking
from dineflow.services.booking_state import assert_booking_transition
from dineflow.services.notification_service import NotificationDispatcher, status_update_messages
from dineflow.services.payment_service import no_payment_in_flight
from dineflow.services.reservation_service import load_booking

logger = get_logger(__name__)

OVERRIDE_STATUSES = ("confirmed", "no-show")


async def list_bookings(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    booking_status: Optional[str] = None,
    restaurant_id: Optional[int] = None,
) -> tuple[list[Booking], int]:
    query = select(Booking)
    if booking_status:
        query = query.where(Booking.booking_status == booking_status)
    if restaurant_id:
        query = query.where(Booking.restaurant_id == restaurant_id)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    result = await db.execute(
        query
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def update_booking_status(
    db: AsyncSession,
    dispatcher: NotificationDispatcher,
    booking_id: int,
    new_status: str,
    admin_id: int,
) -> Booking:
    if new_status not in OVERRIDE_STATUSES:
        raise InvalidStateError(f"Status {new_status} cannot be set by an admin override")

    booking = await load_booking(db, booking_id, with_relations=True)
    previous = booking.booking_status
    assert_booking_transition(previous, new_status)

    restaurant_name = booking.restaurant.name
    user = booking.user

    result = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking.id,
            Booking.booking_status == previous,
            no_payment_in_flight(datetime.now(timezone.utc)),
        )
        .values(booking_status=new_status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InvalidStateError("Booking changed concurrently or has a payment in progress; please reload it")

    await db.flush()
    await db.refresh(booking)

    record_transition(new_status)
    logger.info(
        "booking_status_overridden",
        booking_id=booking.id,
        admin_id=admin_id,
        from_status=previous,
        to_status=new_status,
    )
    dispatcher.dispatch(status_update_messages(booking, restaurant_name, user))
    return booking
