"""
Restaurant and its fixed table inventory.

Key design decisions:
- Tables live in their own table keyed by (restaurant_id, table_code) so the
  short public id ("T01") stays unique per restaurant only
- `position` keeps the inventory in the order the restaurant defined it
- Bookings reference a table by its public code, not by foreign key; the
  inventory is mutated only by admin tooling
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from dineflow.db.base import Base, TimestampMixin


class Restaurant(Base, TimestampMixin):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    address = Column(String(500), nullable=True)
    phone = Column(String(50), nullable=True)
    image = Column(String(500), nullable=True)
    deposit_per_person = Column(Numeric(10, 2), nullable=False, default=0)

    tables = relationship(
        "RestaurantTable",
        back_populates="restaurant",
        lazy="selectin",
        order_by="RestaurantTable.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("deposit_per_person >= 0", name="check_deposit_per_person_non_negative"),
    )

    def find_table(self, table_code: str):
        return next((t for t in self.tables if t.table_code == table_code), None)

    def __repr__(self) -> str:
        return f"<Restaurant(id={self.id}, name={self.name}, tables={len(self.tables)})>"


class RestaurantTable(Base):
    __tablename__ = "restaurant_tables"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    table_code = Column(String(50), nullable=False)
    capacity = Column(Integer, nullable=False)
    type = Column(String(100), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    restaurant = relationship("Restaurant", back_populates="tables")

    __table_args__ = (
        UniqueConstraint("restaurant_id", "table_code", name="uq_restaurant_table_code"),
        CheckConstraint("capacity > 0", name="check_table_capacity_positive"),
    )

    def __repr__(self) -> str:
        return f"<RestaurantTable(code={self.table_code}, capacity={self.capacity})>"
