"""Initial schema: users, restaurants, restaurant_tables, bookings.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("line_user_id", sa.String(100), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    # Restaurants and their table inventory
    op.create_table(
        "restaurants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("image", sa.String(500), nullable=True),
        sa.Column("deposit_per_person", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("deposit_per_person >= 0", name="check_deposit_per_person_non_negative"),
    )
    op.create_index("ix_restaurants_id", "restaurants", ["id"])

    op.create_table(
        "restaurant_tables",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("table_code", sa.String(50), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.UniqueConstraint("restaurant_id", "table_code", name="uq_restaurant_table_code"),
        sa.CheckConstraint("capacity > 0", name="check_table_capacity_positive"),
    )
    op.create_index("ix_restaurant_tables_restaurant_id", "restaurant_tables", ["restaurant_id"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(50), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("booking_time", sa.Time(), nullable=False),
        sa.Column("num_guests", sa.Integer(), nullable=False),
        sa.Column("table_id", sa.String(50), nullable=False),
        sa.Column("deposit_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("payment_reference_id", sa.String(255), nullable=True),
        sa.Column("payment_attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refund_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("booking_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("special_requests", sa.String(1000), nullable=False, server_default=sa.text("''")),
        sa.Column("dietary_restrictions", sa.String(1000), nullable=False, server_default=sa.text("''")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("num_guests > 0", name="check_booking_num_guests_positive"),
        sa.CheckConstraint("deposit_amount >= 0", name="check_booking_deposit_non_negative"),
        sa.CheckConstraint(
            "booking_status IN ('pending', 'confirmed', 'cancelled', 'no-show', 'checked-in')",
            name="check_booking_status",
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded')",
            name="check_payment_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_restaurant_id", "bookings", ["restaurant_id"])
    op.create_index(
        "ix_bookings_restaurant_slot", "bookings", ["restaurant_id", "booking_date", "booking_time"]
    )
    # ONE ACTIVE BOOKING PER TABLE SLOT.
    # Two concurrent inserts for the same slot both pass the availability
    # check; this index makes the second INSERT fail. Cancelled and no-show
    # rows are outside the predicate, so a released slot can be booked again.
    op.create_index(
        "uq_bookings_active_slot",
        "bookings",
        ["restaurant_id", "table_id", "booking_date", "booking_time"],
        unique=True,
        postgresql_where=sa.text("booking_status IN ('pending', 'confirmed')"),
    )


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("restaurant_tables")
    op.drop_table("restaurants")
    op.drop_table("users")
