"""
Booking model: one reservation of one table slot, plus its deposit payment.

Key design decisions:
- Partial unique index on (restaurant_id, table_id, booking_date, booking_time)
  restricted to active statuses is the atomic check-and-insert that keeps a
  table slot from being claimed twice; cancelled/no-show rows drop out of it
- Status fields are strings guarded by CHECK constraints
- `deposit_amount` is written once at creation
- `payment_attempts` is an optimistic claim counter for payment processing;
  it also feeds the gateway idempotency key
- `payment_claimed_at` marks a charge in flight so a concurrent caller backs off
- Bookings are never deleted; cancellation is a status transition
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Date,
    Time,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
    text,
)
from sqlalchemy.orm import relationship

from dineflow.db.base import Base, TimestampMixin

BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "no-show", "checked-in")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
ACTIVE_BOOKING_STATUSES = ("pending", "confirmed")

_ACTIVE_SLOT_PREDICATE = text("booking_status IN ('pending', 'confirmed')")


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=False)

    booking_date = Column(Date, nullable=False)
    booking_time = Column(Time, nullable=False)
    num_guests = Column(Integer, nullable=False)
    table_id = Column(String(50), nullable=False)  # RestaurantTable.table_code

    deposit_amount = Column(Numeric(10, 2), nullable=False)
    payment_status = Column(String(20), nullable=False, default="pending")
    payment_reference_id = Column(String(255), nullable=True)
    payment_attempts = Column(Integer, nullable=False, default=0)
    payment_claimed_at = Column(DateTime(timezone=True), nullable=True)  # set while a charge is in flight
    refund_amount = Column(Numeric(10, 2), nullable=True)

    booking_status = Column(String(20), nullable=False, default="pending")
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)

    special_requests = Column(String(1000), nullable=False, default="")
    dietary_restrictions = Column(String(1000), nullable=False, default="")

    # Relationships
    restaurant = relationship("Restaurant", lazy="raise")
    user = relationship("User", back_populates="bookings", lazy="raise")

    __table_args__ = (
        Index(
            "uq_bookings_active_slot",
            "restaurant_id",
            "table_id",
            "booking_date",
            "booking_time",
            unique=True,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
        ),
        # Availability lookups: all bookings of a restaurant at one date/time
        Index("ix_bookings_restaurant_slot", "restaurant_id", "booking_date", "booking_time"),
        CheckConstraint("num_guests > 0", name="check_booking_num_guests_positive"),
        CheckConstraint("deposit_amount >= 0", name="check_booking_deposit_non_negative"),
        CheckConstraint(
            "booking_status IN ('pending', 'confirmed', 'cancelled', 'no-show', 'checked-in')",
            name="check_booking_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded')",
            name="check_payment_status",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, restaurant={self.restaurant_id}, table={self.table_id}, "
            f"status={self.booking_status}, payment={self.payment_status})>"
        )
