"""
User model with secure password storage and notification contact points.
"""

from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship

from dineflow.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    line_user_id = Column(String(100), nullable=True)  # push recipient
    is_admin = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    bookings = relationship("Booking", back_populates="user", lazy="raise")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, admin={self.is_admin})>"
