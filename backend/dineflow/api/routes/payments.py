"""
Deposit payment endpoint.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dineflow.db.session import get_db
from dineflow.schemas.booking import BookingResponse
from dineflow.schemas.payment import PaymentRequest, PaymentResponse
from dineflow.services.payment_service import process_payment
from dineflow.services.interfaces.payment_gateway import PaymentGateway
from dineflow.services.notification_service import NotificationDispatcher
from dineflow.services.strategy_factory import get_payment_gateway, get_notification_dispatcher
from dineflow.core.security import Identity, get_current_identity

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/process", response_model=PaymentResponse)
async def process_payment_endpoint(
    payment: PaymentRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Charge the booking deposit and confirm the booking.
    402 on decline or gateway outage, 403 for someone else's booking,
    409 if already paid.
    """
    booking = await process_payment(
        db, gateway, dispatcher, payment,
        requesting_user_id=identity.user_id, is_admin=identity.is_admin,
    )
    return PaymentResponse(
        success=True,
        message="Payment successful, booking confirmed!",
        booking=BookingResponse.model_validate(booking),
    )
