"""
Booking endpoints: create, history, detail, QR payload, cancel, check-in.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from dineflow.db.session import get_db
from dineflow.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingCreatedResponse,
    BookingCancelResponse,
    BookingQrPayload,
)
from dineflow.schemas.restaurant import TableResponse
from dineflow.services.reservation_service import create_booking, get_booking_for_user, get_user_bookings
from dineflow.services.cancellation_service import cancel_booking
from dineflow.services.checkin_service import check_in, qr_payload
from dineflow.services.interfaces.payment_gateway import PaymentGateway
from dineflow.services.notification_service import NotificationDispatcher
from dineflow.services.strategy_factory import get_payment_gateway, get_notification_dispatcher
from dineflow.core.security import Identity, get_current_identity, get_current_user_id

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserve a table slot. The booking starts pending until the deposit is paid.
    Returns 409 if the slot was claimed by someone else in the meantime.
    """
    booking, restaurant, table = await create_booking(db, user_id, booking_data)
    return BookingCreatedResponse(
        booking_id=booking.id,
        deposit_amount=booking.deposit_amount,
        restaurant_name=restaurant.name,
        table=TableResponse.model_validate(table),
        booking=BookingResponse.model_validate(booking),
    )


@router.get("/", response_model=list[BookingResponse])
async def booking_history(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """All bookings of the authenticated user, newest first."""
    return await get_user_bookings(db, user_id)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(
    booking_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await get_booking_for_user(db, booking_id, identity.user_id, identity.is_admin)


@router.get("/{booking_id}/qr", response_model=BookingQrPayload)
async def booking_qr_endpoint(
    booking_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Payload the client renders as the check-in QR code."""
    booking = await get_booking_for_user(db, booking_id, identity.user_id, identity.is_admin)
    return qr_payload(booking)


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Cancel a booking; a paid deposit is refunded pro rata."""
    booking, refund_amount = await cancel_booking(
        db,
        gateway,
        dispatcher,
        booking_id,
        requesting_user_id=identity.user_id,
        is_admin=identity.is_admin,
    )
    return BookingCancelResponse(
        message="Booking cancelled and refunded" if refund_amount > 0 else "Booking cancelled",
        booking_id=booking.id,
        refund_amount=refund_amount,
        booking=BookingResponse.model_validate(booking),
    )


@router.post("/{booking_id}/checkin", response_model=BookingResponse)
async def check_in_endpoint(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Mark a confirmed booking as checked in (scanned QR code)."""
    return await check_in(db, dispatcher, booking_id)
