"""
Reservation service: creates bookings without ever double-booking a table.

CONCURRENCY STRATEGY: Atomic check-and-insert
=============================================

Problem:
  Availability is read in one request and the booking is written in another.
  Two customers who both saw "T01 is free" can both submit, and a
  read-then-write check in application code lets both inserts through.

Solution:
  The bookings table carries a partial unique index

      UNIQUE (restaurant_id, table_id, booking_date, booking_time)
      WHERE booking_status IN ('pending', 'confirmed')

  1. Re-query for an active booking on the slot and fail fast with a
     ConflictError if one exists (cheap, gives the common case a clear message)
  2. INSERT the booking and flush
  3. If the INSERT violates the index, another transaction claimed the slot
     between step 1 and step 2 -> ConflictError

  Step 3 is what makes the check atomic; step 1 only saves a round trip to a
  guaranteed failure. Cancelled and no-show rows fall out of the index, so
  the slot becomes bookable again without deleting anything.
"""

from datetime import date, time
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from dineflow.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from dineflow.core.logging import get_logger
from dineflow.core.metrics import booking_latency, record_booking_attempt
from dineflow.models.booking import Booking, ACTIVE_BOOKING_STATUSES
from dineflow.models.restaurant import Restaurant, RestaurantTable
from dineflow.schemas.booking import BookingCreate
from dineflow.services.restaurant_service import get_restaurant

logger = get_logger(__name__)

SLOT_TAKEN_MESSAGE = "Selected table is no longer available at this time. Please choose another."


def compute_deposit(deposit_per_person: Decimal, num_guests: int) -> Decimal:
    return Decimal(deposit_per_person) * num_guests


def _validate_request(data: BookingCreate) -> None:
    missing = [
        name for name in ("table_id", "customer_name", "customer_email", "customer_phone")
        if not str(getattr(data, name) or "").strip()
    ]
    if missing:
        raise ValidationError(f"Missing required booking details: {', '.join(missing)}")
    if data.num_guests < 1:
        raise ValidationError("Number of guests must be a positive integer")


async def _active_booking_for_slot(
    db: AsyncSession,
    restaurant_id: int,
    table_id: str,
    booking_date: date,
    booking_time: time,
) -> Booking | None:
    result = await db.execute(
        select(Booking).where(
            Booking.restaurant_id == restaurant_id,
            Booking.table_id == table_id,
            Booking.booking_date == booking_date,
            Booking.booking_time == booking_time,
            Booking.booking_status.in_(ACTIVE_BOOKING_STATUSES),
        )
    )
    return result.scalars().first()


async def create_booking(
    db: AsyncSession,
    user_id: int,
    data: BookingCreate,
) -> tuple[Booking, Restaurant, RestaurantTable]:
    """
    Create a pending booking for one table slot.
    Raises ValidationError, NotFoundError or ConflictError; on any failure
    nothing is written.
    """
    with booking_latency.time():
        _validate_request(data)

        restaurant = await get_restaurant(db, data.restaurant_id)
        table = restaurant.find_table(data.table_id)
        if table is None:
            raise NotFoundError(f"Table {data.table_id} not found in restaurant {restaurant.id}")

        if data.num_guests > table.capacity:
            record_booking_attempt("error")
            raise ValidationError(
                f"Table {table.table_code} seats {table.capacity}; requested {data.num_guests} guests"
            )

        existing = await _active_booking_for_slot(
            db, restaurant.id, table.table_code, data.booking_date, data.booking_time
        )
        if existing is not None:
            record_booking_attempt("conflict")
            logger.warning(
                "booking_conflict",
                restaurant_id=restaurant.id,
                table_id=table.table_code,
                date=data.booking_date.isoformat(),
                time=data.booking_time.isoformat(),
                stage="recheck",
            )
            raise ConflictError(SLOT_TAKEN_MESSAGE)

        # rollback expires ORM state; keep plain values for the conflict log
        restaurant_id = restaurant.id
        table_code = table.table_code

        booking = Booking(
            restaurant_id=restaurant_id,
            user_id=user_id,
            customer_name=data.customer_name,
            customer_email=data.customer_email,
            customer_phone=data.customer_phone,
            booking_date=data.booking_date,
            booking_time=data.booking_time,
            num_guests=data.num_guests,
            table_id=table_code,
            deposit_amount=compute_deposit(restaurant.deposit_per_person, data.num_guests),
            payment_status="pending",
            booking_status="pending",
            payment_reference_id=None,
            special_requests=data.special_requests or "",
            dietary_restrictions=data.dietary_restrictions or "",
        )
        db.add(booking)
        try:
            await db.flush()
        except IntegrityError:
            # The active-slot index fired: a concurrent request won the slot
            await db.rollback()
            record_booking_attempt("conflict")
            logger.warning(
                "booking_conflict",
                restaurant_id=restaurant_id,
                table_id=table_code,
                date=data.booking_date.isoformat(),
                time=data.booking_time.isoformat(),
                stage="insert",
            )
            raise ConflictError(SLOT_TAKEN_MESSAGE)

        await db.refresh(booking)

    record_booking_attempt("success")
    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=user_id,
        restaurant_id=restaurant.id,
        table_id=booking.table_id,
        guests=booking.num_guests,
        deposit=str(booking.deposit_amount),
    )
    return booking, restaurant, table


async def load_booking(db: AsyncSession, booking_id: int, with_relations: bool = False) -> Booking:
    """Load a booking by id, optionally with its restaurant and user."""
    query = select(Booking).where(Booking.id == booking_id)
    if with_relations:
        query = query.options(selectinload(Booking.restaurant), selectinload(Booking.user))
    result = await db.execute(query)
    booking = result.scalar_one_or_none()

    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


async def get_booking_for_user(
    db: AsyncSession,
    booking_id: int,
    user_id: int,
    is_admin: bool = False,
) -> Booking:
    booking = await load_booking(db, booking_id)
    if booking.user_id != user_id and not is_admin:
        raise ForbiddenError("You do not have access to this booking")
    return booking


async def get_user_bookings(db: AsyncSession, user_id: int) -> list[Booking]:
    """Get all bookings for a user, newest first."""
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())
