"""
Pydantic schemas for deposit payment.
"""

from typing import Optional
from pydantic import BaseModel, Field

from dineflow.schemas.booking import BookingResponse


class PaymentRequest(BaseModel):
    booking_id: int
    payment_method_token: str = Field(..., min_length=1, max_length=255)
    # Client-side view of the charge in minor units; informational only
    amount: Optional[int] = Field(None, ge=0)

    model_config = {"extra": "forbid"}


class PaymentResponse(BaseModel):
    success: bool
    message: str
    booking: BookingResponse
