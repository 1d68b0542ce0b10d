"""
Pydantic schemas package.
All schemas are exported here for easy import.
"""
from travel_api.schemas.user import (
    RegisterRequest,
    LoginRequest,
    UserResponse,
    AuthResponse,
    ValidateTokenResponse,
)
from travel_api.schemas.travel import (
    CoordinatesRequest,
    PhotoRequest,
    PointRequest,
    TravelCreateRequest,
    PointUpdateRequest,
    TravelUpdateRequest,
    ShareRequest,
    CoordinatesResponse,
    PhotoResponse,
    PointResponse,
    TravelSummary,
    TravelResponse,
    FeedItem,
    FeedPage,
    LikesResponse,
    PhotoDeleteResponse,
)

__all__ = [
    # User schemas
    "RegisterRequest",
    "LoginRequest",
    "UserResponse",
    "AuthResponse",
    "ValidateTokenResponse",
    # Travel schemas
    "CoordinatesRequest",
    "PhotoRequest",
    "PointRequest",
    "TravelCreateRequest",
    "PointUpdateRequest",
    "TravelUpdateRequest",
    "ShareRequest",
    "CoordinatesResponse",
    "PhotoResponse",
    "PointResponse",
    "TravelSummary",
    "TravelResponse",
    "FeedItem",
    "FeedPage",
    "LikesResponse",
    "PhotoDeleteResponse",
]
