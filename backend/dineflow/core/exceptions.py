"""
Domain error taxonomy.

Every failure the booking core returns carries a stable `kind` plus a
human-readable message. The classes subclass HTTPException so services can
raise them directly, the same way they raise HTTP errors elsewhere, and the
handler in main.py renders them as {"error": kind, "detail": message}.
"""

from fastapi import HTTPException, status


class BookingError(HTTPException):
    kind: str = "booking_error"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)

    @property
    def message(self) -> str:
        return self.detail


class ValidationError(BookingError):
    """Malformed or missing input, or party size above table capacity."""

    kind = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class ForbiddenError(BookingError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(BookingError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(BookingError):
    """The table slot (or a payment claim) was taken by a concurrent request."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class AlreadyPaidError(BookingError):
    kind = "already_paid"
    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(BookingError):
    kind = "invalid_state"
    status_code = status.HTTP_409_CONFLICT


class PaymentError(BookingError):
    """Gateway declined the charge/refund or could not be reached."""

    kind = "payment_error"
    status_code = status.HTTP_402_PAYMENT_REQUIRED


class GatewayUnavailableError(Exception):
    """Raised by gateway adapters on transport failures and 5xx responses."""
