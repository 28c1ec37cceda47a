"""
Table availability for a restaurant at a date/time.

The answer is advisory: nothing is locked, so a table reported free here can
be claimed by someone else before the caller books it. create_booking
re-checks at commit time against the active-slot unique index.
"""

from datetime import date, time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dineflow.core.exceptions import ValidationError
from dineflow.core.logging import get_logger
from dineflow.models.booking import Booking, ACTIVE_BOOKING_STATUSES
from dineflow.models.restaurant import RestaurantTable
from dineflow.services.restaurant_service import get_restaurant

logger = get_logger(__name__)


async def occupied_table_ids(
    db: AsyncSession,
    restaurant_id: int,
    booking_date: date,
    booking_time: time,
) -> set[str]:
    result = await db.execute(
        select(Booking.table_id).where(
            Booking.restaurant_id == restaurant_id,
            Booking.booking_date == booking_date,
            Booking.booking_time == booking_time,
            Booking.booking_status.in_(ACTIVE_BOOKING_STATUSES),
        )
    )
    return set(result.scalars().all())


async def find_available_tables(
    db: AsyncSession,
    restaurant_id: int,
    booking_date: date,
    booking_time: time,
    party_size: int,
) -> list[RestaurantTable]:
    """Tables that seat the party and hold no active booking, in catalog order."""
    if party_size < 1:
        raise ValidationError("Number of guests must be a positive integer")

    restaurant = await get_restaurant(db, restaurant_id)
    occupied = await occupied_table_ids(db, restaurant_id, booking_date, booking_time)

    available = [
        table for table in restaurant.tables
        if table.capacity >= party_size and table.table_code not in occupied
    ]
    logger.debug(
        "availability_checked",
        restaurant_id=restaurant_id,
        date=booking_date.isoformat(),
        time=booking_time.isoformat(),
        party_size=party_size,
        available=len(available),
        occupied=len(occupied),
    )
    return available
