"""
Services package.
Contains business logic and local photo storage.
"""
from travel_api.services.storage import PhotoStorage
from travel_api.services.auth import AuthService, AuthSession
from travel_api.services.travel import TravelService

__all__ = [
    "PhotoStorage",
    "AuthService",
    "AuthSession",
    "TravelService",
]
