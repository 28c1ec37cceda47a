"""
Race tests: concurrent requests for the same table slot or payment.

Each contender uses its own session (its own connection), the way two
requests would in production.
"""

import asyncio
from datetime import time

import pytest
from sqlalchemy import select, func

from dineflow.core.exceptions import ConflictError
from dineflow.models.booking import Booking
from dineflow.schemas.booking import BookingCreate
from dineflow.services.reservation_service import create_booking


def _request(restaurant_id: int, booking_date, table_id: str = "T01") -> BookingCreate:
    return BookingCreate(
        restaurant_id=restaurant_id,
        table_id=table_id,
        booking_date=booking_date,
        booking_time=time(19, 0),
        num_guests=2,
        customer_name="Racer",
        customer_email="racer@example.com",
        customer_phone="0800000000",
    )


async def _book(session_factory, user_id: int, data: BookingCreate):
    async with session_factory() as session:
        try:
            booking, _, _ = await create_booking(session, user_id, data)
            await session.commit()
            return booking
        except Exception:
            await session.rollback()
            raise


@pytest.mark.asyncio
async def test_concurrent_bookings_same_slot(session_factory, test_restaurant, test_user, other_user, booking_date):
    """Exactly one of two simultaneous bookings wins; the other gets ConflictError."""
    data = _request(test_restaurant.id, booking_date)

    results = await asyncio.gather(
        _book(session_factory, test_user.id, data),
        _book(session_factory, other_user.id, data),
        return_exceptions=True,
    )

    winners = [r for r in results if isinstance(r, Booking)]
    losers = [r for r in results if isinstance(r, ConflictError)]
    assert len(winners) == 1
    assert len(losers) == 1

    async with session_factory() as session:
        active = await session.execute(
            select(func.count()).select_from(Booking).where(
                Booking.restaurant_id == test_restaurant.id,
                Booking.table_id == "T01",
                Booking.booking_status.in_(("pending", "confirmed")),
            )
        )
        assert active.scalar() == 1


@pytest.mark.asyncio
async def test_concurrent_bookings_different_tables(session_factory, test_restaurant, test_user, other_user, booking_date):
    results = await asyncio.gather(
        _book(session_factory, test_user.id, _request(test_restaurant.id, booking_date, "T01")),
        _book(session_factory, other_user.id, _request(test_restaurant.id, booking_date, "T02")),
        return_exceptions=True,
    )
    assert all(isinstance(r, Booking) for r in results)


@pytest.mark.asyncio
async def test_insert_conflict_detected_without_recheck(session_factory, test_restaurant, test_user, booking_date, monkeypatch):
    """Even when the advisory re-check misses the rival row, the unique index rejects the insert."""
    from dineflow.services import reservation_service

    await _book(session_factory, test_user.id, _request(test_restaurant.id, booking_date))

    async def _blind_recheck(*args, **kwargs):
        return None

    monkeypatch.setattr(reservation_service, "_active_booking_for_slot", _blind_recheck)

    with pytest.raises(ConflictError):
        await _book(session_factory, test_user.id, _request(test_restaurant.id, booking_date))


@pytest.mark.asyncio
async def test_concurrent_booking_requests_one_gets_409(client, auth_headers, other_headers, booking_payload):
    """Over HTTP the losing request is a 409 conflict, never a server error."""
    responses = await asyncio.gather(
        client.post("/api/v1/bookings/", json=booking_payload(), headers=auth_headers),
        client.post("/api/v1/bookings/", json=booking_payload(), headers=other_headers),
    )

    codes = sorted(r.status_code for r in responses)
    assert codes == [201, 409]

    loser = next(r for r in responses if r.status_code == 409)
    assert loser.json()["error"] == "conflict"
    assert "no longer available" in loser.json()["detail"]
