"""
Database models package.
All models are exported here for easy import.
"""
from travel_api.models.user import User
from travel_api.models.travel import Travel, TravelTag
from travel_api.models.point import TravelPoint, Coordinates, DEFAULT_POINT_TYPE
from travel_api.models.photo import Photo

__all__ = [
    "User",
    "Travel",
    "TravelTag",
    "TravelPoint",
    "Coordinates",
    "Photo",
    "DEFAULT_POINT_TYPE",
]
