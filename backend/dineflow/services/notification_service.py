"""
Fire-and-forget notification dispatch.

State-changing operations hand their messages to the dispatcher and return
immediately; a single background worker drains the queue and delivers each
message through the configured Notifier. Nothing that happens here can fail
or roll back the booking transition that produced the message:

- dispatch() never raises; a full queue drops the message (logged + counted)
- delivery errors are logged and counted, never re-raised
- no ordering is promised between messages from different operations
"""

import asyncio
from typing import Iterable, Optional

from dineflow.core.logging import get_logger
from dineflow.core.metrics import record_notification
from dineflow.models.booking import Booking
from dineflow.models.user import User
from dineflow.services.interfaces.notifier import Notification, Notifier

logger = get_logger(__name__)


class NotificationDispatcher:

    def __init__(self, notifier: Notifier, max_queue_size: int = 1000):
        self.notifier = notifier
        self._queue: asyncio.Queue[Notification] = asyncio.Queue(maxsize=max_queue_size)
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def dispatch(self, notifications: Iterable[Notification]) -> None:
        for notification in notifications:
            try:
                self._queue.put_nowait(notification)
            except asyncio.QueueFull:
                record_notification(notification.channel, "dropped")
                logger.warning(
                    "notification_dropped",
                    channel=notification.channel,
                    recipient=notification.recipient,
                    reason="queue_full",
                )

    async def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="notification-dispatcher")
        logger.info("notification_dispatcher_started")

    async def stop(self, timeout: float = 5.0) -> None:
        """Drain what is queued (bounded by timeout), then stop the worker."""
        if not self.running:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("notification_drain_timeout", pending=self.pending)
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        await self.notifier.close()
        logger.info("notification_dispatcher_stopped")

    async def _run(self) -> None:
        while True:
            notification = await self._queue.get()
            try:
                await self.deliver(notification)
            finally:
                self._queue.task_done()

    async def deliver(self, notification: Notification) -> None:
        try:
            await self.notifier.send(notification)
        except Exception as e:
            record_notification(notification.channel, "failed")
            logger.error(
                "notification_failed",
                channel=notification.channel,
                recipient=notification.recipient,
                error=str(e),
            )
            return
        record_notification(notification.channel, "sent")


# ---------------------------------------------------------------------------
# Message builders
# ---------------------------------------------------------------------------


def _slot_line(restaurant_name: str, booking: Booking) -> str:
    return (
        f"Restaurant: {restaurant_name}\n"
        f"Date: {booking.booking_date.isoformat()} Time: {booking.booking_time.strftime('%H:%M')}"
    )


def payment_confirmed_messages(
    booking: Booking,
    restaurant_name: str,
    user: Optional[User],
    admin_email: str = "",
) -> list[Notification]:
    text = (
        f"Your table at {restaurant_name} for {booking.num_guests} guests on "
        f"{booking.booking_date.isoformat()} at {booking.booking_time.strftime('%H:%M')} is confirmed. "
        f"Booking ID: {booking.id}"
    )
    html = (
        f"<p><strong>Your booking is confirmed!</strong></p>"
        f"<p>Restaurant: {restaurant_name}</p>"
        f"<p>Date: {booking.booking_date.isoformat()}</p>"
        f"<p>Time: {booking.booking_time.strftime('%H:%M')}</p>"
        f"<p>Guests: {booking.num_guests}</p>"
        f"<p>Table: {booking.table_id}</p>"
        f"<p>Deposit paid: {booking.deposit_amount}</p>"
        f"<p>Booking ID: {booking.id}</p>"
    )
    messages = []
    if booking.customer_phone:
        messages.append(Notification(channel="sms", recipient=booking.customer_phone, body=text))
    messages.append(
        Notification(
            channel="email",
            recipient=booking.customer_email,
            subject="Your DineFlow booking is confirmed",
            body=html,
        )
    )
    if user is not None and user.line_user_id:
        messages.append(Notification(channel="push", recipient=user.line_user_id, body=text))
    if admin_email:
        messages.append(
            Notification(
                channel="email",
                recipient=admin_email,
                subject=f"New booking for {restaurant_name}",
                body=(
                    f"<p>New paid booking at {restaurant_name}</p>"
                    f"<p>Customer: {booking.customer_name} ({booking.customer_email}, {booking.customer_phone})</p>"
                    f"<p>Date: {booking.booking_date.isoformat()} Time: {booking.booking_time.strftime('%H:%M')}</p>"
                    f"<p>Guests: {booking.num_guests} Table: {booking.table_id}</p>"
                    f"<p>Deposit: {booking.deposit_amount} (paid)</p>"
                    f"<p>Booking ID: {booking.id}</p>"
                ),
            )
        )
    return messages


def cancellation_messages(
    booking: Booking,
    restaurant_name: str,
    user: Optional[User],
    refund_amount,
) -> list[Notification]:
    text = (
        f"Your booking has been cancelled and {refund_amount} has been refunded.\n"
        f"{_slot_line(restaurant_name, booking)}"
    )
    messages = [
        Notification(
            channel="email",
            recipient=booking.customer_email,
            subject="DineFlow booking cancelled",
            body=f"<p>{text}</p>",
        )
    ]
    if user is not None and user.line_user_id:
        messages.append(Notification(channel="push", recipient=user.line_user_id, body=text))
    return messages


def check_in_messages(booking: Booking, restaurant_name: str, user: Optional[User]) -> list[Notification]:
    text = f"Checked in successfully!\n{_slot_line(restaurant_name, booking)}"
    messages = [
        Notification(
            channel="email",
            recipient=booking.customer_email,
            subject="DineFlow check-in confirmed",
            body=f"<p>{text}</p>",
        )
    ]
    if user is not None and user.line_user_id:
        messages.append(Notification(channel="push", recipient=user.line_user_id, body=text))
    return messages


def status_update_messages(booking: Booking, restaurant_name: str, user: Optional[User]) -> list[Notification]:
    headline = {
        "confirmed": "Your booking has been confirmed",
        "no-show": "Your booking was marked as a no-show",
    }.get(booking.booking_status, f"Booking status: {booking.booking_status}")
    if user is None or not user.line_user_id:
        return []
    return [
        Notification(
            channel="push",
            recipient=user.line_user_id,
            body=f"{headline}\n{_slot_line(restaurant_name, booking)}",
        )
    ]
