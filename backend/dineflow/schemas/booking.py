"""
Pydantic schemas for booking-related request/response validation.

Request bodies forbid unknown fields so a typo is rejected before any
domain logic runs.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from dineflow.schemas.restaurant import TableResponse


class BookingCreate(BaseModel):
    restaurant_id: int
    table_id: str = Field(..., min_length=1, max_length=50)
    booking_date: date
    booking_time: time
    num_guests: int = Field(..., ge=1, le=50)
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_email: EmailStr
    customer_phone: str = Field(..., min_length=1, max_length=50)
    special_requests: str = Field(default="", max_length=1000)
    dietary_restrictions: str = Field(default="", max_length=1000)

    model_config = {"extra": "forbid"}

    @field_validator("table_id", "customer_name", "customer_phone")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class BookingResponse(BaseModel):
    id: int
    restaurant_id: int
    user_id: int
    customer_name: str
    customer_email: str
    customer_phone: str
    booking_date: date
    booking_time: time
    num_guests: int
    table_id: str
    deposit_amount: Decimal
    payment_status: str
    payment_reference_id: Optional[str]
    refund_amount: Optional[Decimal]
    booking_status: str
    special_requests: str
    dietary_restrictions: str
    created_at: datetime
    cancelled_at: Optional[datetime]
    checked_in_at: Optional[datetime]

    model_config = {"from_attributes": True}


class BookingCreatedResponse(BaseModel):
    message: str = "Booking created successfully, awaiting payment."
    booking_id: int
    deposit_amount: Decimal
    restaurant_name: str
    table: TableResponse
    booking: BookingResponse


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    refund_amount: Decimal
    booking: BookingResponse


class BookingQrPayload(BaseModel):
    booking_id: int
    restaurant_id: int
    customer_name: str
    booking_date: date
    booking_time: time
    table_id: str


class BookingStatusUpdate(BaseModel):
    status: Literal["confirmed", "no-show"]

    model_config = {"extra": "forbid"}


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    total: int
    page: int
    page_size: int
