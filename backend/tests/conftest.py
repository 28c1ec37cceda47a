"""
Pytest fixtures for test database, client, collaborators and authentication.

Each test gets its own SQLite file (aiosqlite) created from the model
metadata, so the partial unique index behaves as it does on PostgreSQL.
The payment gateway and notification dispatcher are replaced with
in-memory fakes.
"""

import os

# Must be set before dineflow settings are first read
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("SEED_SAMPLE_DATA", "false")
os.environ.setdefault("ADMIN_EMAIL", "admin@dineflow.test")

from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from dineflow.main import app
from dineflow.db.base import Base
from dineflow.db.session import get_db
from dineflow.core.exceptions import GatewayUnavailableError
from dineflow.core.security import create_access_token, hash_password
from dineflow.infrastructure.notifiers import LoggingNotifier
from dineflow.infrastructure.simulated_gateway import SimulatedPaymentGateway
from dineflow.models import Booking, Restaurant, RestaurantTable, User
from dineflow.services.notification_service import NotificationDispatcher
from dineflow.services.strategy_factory import get_payment_gateway, get_notification_dispatcher

BOOKING_DATE = date.today() + timedelta(days=30)
BOOKING_TIME = "19:00:00"


class FakeGateway(SimulatedPaymentGateway):
    """Simulated gateway that records calls and can be switched offline."""

    def __init__(self):
        super().__init__()
        self.charges = []
        self.refunds = []
        self.unavailable = False

    async def authorize_and_capture(self, amount_minor_units, currency, payment_method_token, metadata, idempotency_key):
        self.charges.append({
            "amount": amount_minor_units,
            "currency": currency,
            "token": payment_method_token,
            "metadata": metadata,
            "idempotency_key": idempotency_key,
        })
        if self.unavailable:
            raise GatewayUnavailableError("connection refused")
        return await super().authorize_and_capture(
            amount_minor_units, currency, payment_method_token, metadata, idempotency_key
        )

    async def refund(self, transaction_id, amount_minor_units, idempotency_key):
        self.refunds.append({
            "transaction_id": transaction_id,
            "amount": amount_minor_units,
            "idempotency_key": idempotency_key,
        })
        if self.unavailable:
            raise GatewayUnavailableError("connection refused")
        return await super().refund(transaction_id, amount_minor_units, idempotency_key)


class RecordingDispatcher(NotificationDispatcher):
    """Keeps dispatched notifications in a list instead of queueing them."""

    def __init__(self):
        super().__init__(LoggingNotifier())
        self.sent = []

    def dispatch(self, notifications) -> None:
        self.sent.extend(notifications)


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'dineflow_test.db'}",
        connect_args={"timeout": 30},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, gateway, dispatcher) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the DB session and collaborators overridden."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def fetch_booking(session_factory):
    """Reads a booking in a fresh session, bypassing any identity map."""

    async def _fetch(booking_id: int) -> Booking:
        async with session_factory() as session:
            return await session.get(Booking, booking_id)

    return _fetch


async def _create_user(db_session: AsyncSession, email: str, username: str, **extra) -> User:
    user = User(
        email=email,
        username=username,
        hashed_password=hash_password("testpassword123"),
        **extra,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def _headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "admin": user.is_admin})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await _create_user(
        db_session,
        "test@example.com",
        "testuser",
        phone="0812345678",
        line_user_id="U1234567890",
    )


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "other@example.com", "otheruser")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "admin@example.com", "adminuser", is_admin=True)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return _headers(test_user)


@pytest.fixture
def other_headers(other_user: User) -> dict:
    return _headers(other_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return _headers(admin_user)


@pytest_asyncio.fixture
async def test_restaurant(db_session: AsyncSession) -> Restaurant:
    """deposit_per_person=100; T01 seats 2, T02 seats 4."""
    restaurant = Restaurant(
        name="Test Bistro",
        description="A test restaurant",
        address="1 Test Road",
        phone="02-000-0000",
        deposit_per_person=Decimal("100"),
        tables=[
            RestaurantTable(table_code="T01", capacity=2, type="window", position=0),
            RestaurantTable(table_code="T02", capacity=4, type="center", position=1),
        ],
    )
    db_session.add(restaurant)
    await db_session.commit()
    await db_session.refresh(restaurant)
    return restaurant


@pytest.fixture
def booking_payload(test_restaurant: Restaurant):
    """Factory for a valid POST /bookings body; keyword overrides win."""

    def _payload(**overrides) -> dict:
        payload = {
            "restaurant_id": test_restaurant.id,
            "table_id": "T01",
            "booking_date": BOOKING_DATE.isoformat(),
            "booking_time": BOOKING_TIME,
            "num_guests": 2,
            "customer_name": "Somchai Test",
            "customer_email": "somchai@example.com",
            "customer_phone": "0812345678",
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest_asyncio.fixture
async def pending_booking(client: AsyncClient, auth_headers, booking_payload) -> dict:
    response = await client.post("/api/v1/bookings/", json=booking_payload(), headers=auth_headers)
    assert response.status_code == 201
    return response.json()["booking"]


@pytest_asyncio.fixture
async def paid_booking(client: AsyncClient, auth_headers, pending_booking) -> dict:
    response = await client.post(
        "/api/v1/payments/process",
        json={"booking_id": pending_booking["id"], "payment_method_token": "tok_visa"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    return response.json()["booking"]


@pytest.fixture
def booking_date() -> date:
    return BOOKING_DATE
