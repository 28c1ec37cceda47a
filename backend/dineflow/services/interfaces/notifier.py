"""
Notification delivery interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Notification:
    channel: str  # sms | email | push
    recipient: str
    body: str
    subject: str = ""


class Notifier(ABC):
    """
    Delivers a single notification on one channel.

    Implementations:
    - LoggingNotifier: writes the message to the log (development)
    - HttpNotifier: Twilio SMS, transactional email API, LINE push

    Raising is allowed; the dispatcher absorbs and logs failures.
    """

    @abstractmethod
    async def send(self, notification: Notification) -> None:
        pass

    async def close(self) -> None:
        """Release network resources, if any."""
