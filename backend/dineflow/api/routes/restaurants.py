"""
Restaurant catalog and table availability endpoints.
"""

from datetime import date, time

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dineflow.db.session import get_db
from dineflow.schemas.restaurant import RestaurantResponse, RestaurantListResponse, TableResponse
from dineflow.services.restaurant_service import get_restaurant, list_restaurants
from dineflow.services.availability_service import find_available_tables
from dineflow.services.cache_service import get_cached_restaurants, set_cached_restaurants
from dineflow.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/restaurants", tags=["Restaurants"])


@router.get("/", response_model=RestaurantListResponse)
async def list_restaurants_endpoint(db: AsyncSession = Depends(get_db)):
    """List restaurants with their tables. Served from Redis when cached."""
    cached = await get_cached_restaurants()
    if cached:
        logger.info("restaurant_list_cache_hit")
        cached["cached"] = True
        return RestaurantListResponse(**cached)

    restaurants = await list_restaurants(db)
    response = RestaurantListResponse(
        restaurants=[RestaurantResponse.model_validate(r) for r in restaurants],
        total=len(restaurants),
    )
    await set_cached_restaurants(response.model_dump(mode="json"))
    return response


@router.get("/{restaurant_id}", response_model=RestaurantResponse)
async def get_restaurant_endpoint(restaurant_id: int, db: AsyncSession = Depends(get_db)):
    return await get_restaurant(db, restaurant_id)


@router.get("/{restaurant_id}/tables/available", response_model=list[TableResponse])
async def available_tables_endpoint(
    restaurant_id: int,
    booking_date: date = Query(..., alias="date"),
    booking_time: time = Query(..., alias="time"),
    guests: int = Query(..., ge=1),
    db: AsyncSession = Depends(get_db),
):
    """
    Tables that fit the party and are free at the given date/time.
    Advisory only: the booking endpoint re-checks when it commits.
    """
    return await find_available_tables(db, restaurant_id, booking_date, booking_time, guests)
