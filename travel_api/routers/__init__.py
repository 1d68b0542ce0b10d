"""
API routers package.
"""
from travel_api.routers.auth import router as auth_router
from travel_api.routers.travels import router as travels_router
from travel_api.routers.feed import router as feed_router
from travel_api.routers.photos import router as photos_router

__all__ = ["auth_router", "travels_router", "feed_router", "photos_router"]
