"""
Admin endpoints: booking listing and status override.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dineflow.db.session import get_db
from dineflow.schemas.booking import BookingResponse, BookingListResponse, BookingStatusUpdate
from dineflow.services.admin_service import list_bookings, update_booking_status
from dineflow.services.notification_service import NotificationDispatcher
from dineflow.services.strategy_factory import get_notification_dispatcher
from dineflow.core.security import Identity, get_current_admin

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/bookings", response_model=BookingListResponse)
async def admin_list_bookings(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None),
    restaurant_id: Optional[int] = Query(None),
    admin: Identity = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    bookings, total = await list_bookings(db, page, page_size, status, restaurant_id)
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.put("/bookings/{booking_id}/status", response_model=BookingResponse)
async def admin_update_booking_status(
    booking_id: int,
    update: BookingStatusUpdate,
    admin: Identity = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Confirm a booking or mark it as a no-show."""
    return await update_booking_status(db, dispatcher, booking_id, update.status, admin.user_id)
