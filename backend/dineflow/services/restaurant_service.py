"""
Restaurant catalog: read-only access to restaurants and their table inventory.
"""

from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from dineflow.core.exceptions import NotFoundError
from dineflow.core.logging import get_logger
from dineflow.models.restaurant import Restaurant, RestaurantTable

logger = get_logger(__name__)

SAMPLE_RESTAURANTS = [
    {
        "name": "The Gastronome Bistro",
        "description": "Warm French bistro, made for special dinners",
        "address": "123 Main St, Bangkok",
        "phone": "02-123-4567",
        "deposit_per_person": Decimal("100"),
        "tables": [("T01", 2, "window"), ("T02", 4, "center"), ("T03", 6, "private room"), ("T04", 2, "center")],
    },
    {
        "name": "Zen Sushi House",
        "description": "Traditional sushi and Japanese dishes, fresh every day",
        "address": "456 Sushi Ave, Bangkok",
        "phone": "02-987-6543",
        "deposit_per_person": Decimal("50"),
        "tables": [("S01", 2, "sushi bar"), ("S02", 4, "regular"), ("S03", 2, "sushi bar"), ("S04", 6, "group room")],
    },
]


async def get_restaurant(db: AsyncSession, restaurant_id: int) -> Restaurant:
    """Get a restaurant with its ordered tables."""
    result = await db.execute(select(Restaurant).where(Restaurant.id == restaurant_id))
    restaurant = result.scalar_one_or_none()

    if not restaurant:
        raise NotFoundError(f"Restaurant {restaurant_id} not found")
    return restaurant


async def list_restaurants(db: AsyncSession) -> list[Restaurant]:
    result = await db.execute(select(Restaurant).order_by(Restaurant.id.asc()))
    return list(result.scalars().all())


async def seed_sample_restaurants(db: AsyncSession) -> int:
    """Insert the sample restaurants when the catalog is empty. Returns rows added."""
    existing = (await db.execute(select(func.count()).select_from(Restaurant))).scalar()
    if existing:
        logger.info("seed_skipped", restaurants=existing)
        return 0

    for sample in SAMPLE_RESTAURANTS:
        restaurant = Restaurant(
            name=sample["name"],
            description=sample["description"],
            address=sample["address"],
            phone=sample["phone"],
            deposit_per_person=sample["deposit_per_person"],
            tables=[
                RestaurantTable(table_code=code, capacity=capacity, type=kind, position=position)
                for position, (code, capacity, kind) in enumerate(sample["tables"])
            ],
        )
        db.add(restaurant)

    await db.flush()
    logger.info("seed_completed", restaurants=len(SAMPLE_RESTAURANTS))
    return len(SAMPLE_RESTAURANTS)
