from dineflow.schemas.user import UserCreate, UserResponse, UserLogin, Token
from dineflow.schemas.restaurant import TableResponse, RestaurantResponse, RestaurantListResponse
from dineflow.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingCreatedResponse,
    BookingCancelResponse,
    BookingQrPayload,
    BookingStatusUpdate,
    BookingListResponse,
)
from dineflow.schemas.payment import PaymentRequest, PaymentResponse

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "TableResponse", "RestaurantResponse", "RestaurantListResponse",
    "BookingCreate", "BookingResponse", "BookingCreatedResponse", "BookingCancelResponse",
    "BookingQrPayload", "BookingStatusUpdate", "BookingListResponse",
    "PaymentRequest", "PaymentResponse",
]
