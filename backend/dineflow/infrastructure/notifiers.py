"""
Notification channel adapters.

HttpNotifier talks to the providers' REST APIs with one shared httpx client:
- sms:   Twilio Messages API
- email: transactional email HTTP API (Brevo-compatible JSON payload)
- push:  LINE Messaging API push message

A channel without credentials is skipped with a warning instead of failing.
"""

from typing import Optional

import httpx

from dineflow.core.config import Settings
from dineflow.core.logging import get_logger
from dineflow.services.interfaces.notifier import Notification, Notifier

logger = get_logger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
LINE_PUSH_URL = "https://api.line.me/v2/bot/message/push"


class LoggingNotifier(Notifier):
    """Development notifier: every message goes to the log."""

    async def send(self, notification: Notification) -> None:
        logger.info(
            "notification_logged",
            channel=notification.channel,
            recipient=notification.recipient,
            subject=notification.subject,
            body=notification.body,
        )


class HttpNotifier(Notifier):

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._client = httpx.AsyncClient(timeout=10.0, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def send(self, notification: Notification) -> None:
        handlers = {
            "sms": self._send_sms,
            "email": self._send_email,
            "push": self._send_push,
        }
        handler = handlers.get(notification.channel)
        if handler is None:
            raise ValueError(f"Unknown notification channel: {notification.channel}")
        await handler(notification)

    async def _send_sms(self, notification: Notification) -> None:
        s = self.settings
        if not (s.TWILIO_ACCOUNT_SID and s.TWILIO_AUTH_TOKEN and s.TWILIO_PHONE_NUMBER):
            logger.warning("sms_not_configured", recipient=notification.recipient)
            return

        response = await self._client.post(
            f"{TWILIO_API_BASE}/Accounts/{s.TWILIO_ACCOUNT_SID}/Messages.json",
            auth=(s.TWILIO_ACCOUNT_SID, s.TWILIO_AUTH_TOKEN),
            data={"To": notification.recipient, "From": s.TWILIO_PHONE_NUMBER, "Body": notification.body},
        )
        response.raise_for_status()
        logger.info("sms_sent", recipient=notification.recipient)

    async def _send_email(self, notification: Notification) -> None:
        s = self.settings
        if not s.EMAIL_API_KEY:
            logger.warning("email_not_configured", recipient=notification.recipient)
            return

        payload = {
            "sender": {"name": "DineFlow", "email": s.EMAIL_SENDER},
            "to": [{"email": notification.recipient}],
            "subject": notification.subject,
            "htmlContent": notification.body,
        }
        response = await self._client.post(
            s.EMAIL_API_URL,
            json=payload,
            headers={"api-key": s.EMAIL_API_KEY, "accept": "application/json"},
        )
        response.raise_for_status()
        logger.info("email_sent", recipient=notification.recipient, subject=notification.subject)

    async def _send_push(self, notification: Notification) -> None:
        token = self.settings.LINE_MESSAGING_ACCESS_TOKEN
        if not token:
            logger.warning("push_not_configured", recipient=notification.recipient)
            return

        response = await self._client.post(
            LINE_PUSH_URL,
            json={"to": notification.recipient, "messages": [{"type": "text", "text": notification.body}]},
            headers={"Authorization": f"Bearer {token}"},
        )
        response.raise_for_status()
        logger.info("push_sent", recipient=notification.recipient)
