"""
Pydantic schemas for the restaurant catalog and availability queries.
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class TableResponse(BaseModel):
    table_id: str = Field(validation_alias="table_code")
    capacity: int
    type: str

    model_config = {"from_attributes": True, "populate_by_name": True}


class RestaurantResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    address: Optional[str]
    phone: Optional[str]
    image: Optional[str]
    deposit_per_person: Decimal
    tables: list[TableResponse]

    model_config = {"from_attributes": True}


class RestaurantListResponse(BaseModel):
    restaurants: list[RestaurantResponse]
    total: int
    cached: bool = False
