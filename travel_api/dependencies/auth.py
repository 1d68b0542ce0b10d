"""
Service and authentication dependencies for FastAPI.
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from travel_api.config import Settings, get_settings
from travel_api.database import get_db
from travel_api.models.user import User
from travel_api.services.auth import AuthService
from travel_api.services.storage import PhotoStorage
from travel_api.services.travel import TravelService

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(db, settings)


def get_photo_storage(settings: Settings = Depends(get_settings)) -> PhotoStorage:
    return PhotoStorage(settings)


def get_travel_service(
    db: AsyncSession = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
) -> TravelService:
    return TravelService(db, storage)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    """
    Dependency to get the user an access token belongs to.

    Args:
        credentials: Bearer token from request header
        auth_service: Authentication service

    Returns:
        Authenticated User

    Raises:
        UnauthorizedError: Missing or invalid token, or user not found
    """
    token = credentials.credentials if credentials else None
    return await auth_service.validate_access_token(token)
