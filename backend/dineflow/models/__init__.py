from dineflow.models.user import User
from dineflow.models.restaurant import Restaurant, RestaurantTable
from dineflow.models.booking import Booking

__all__ = ["User", "Restaurant", "RestaurantTable", "Booking"]
