"""
Travel, point and photo schemas.

Request models accept both snake_case and camelCase keys.
Response models are serialized in snake_case.
"""
from datetime import datetime, time
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel


class RequestModel(BaseModel):
    """Base for request bodies: camelCase aliases, snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============== Requests ==============


class CoordinatesRequest(RequestModel):
    """Coordinate pair of a point."""

    lat: float
    lon: float


class PhotoRequest(RequestModel):
    """
    Photo in a create/update payload.
    ``id`` 0 marks a new photo whose bytes come in ``base64_content``.
    """

    id: int = 0
    file_name: Optional[str] = None
    base64_content: Optional[str] = None


class PointRequest(RequestModel):
    """Point of a travel creation payload."""

    name: str
    address: str
    coordinates: CoordinatesRequest
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None
    note: Optional[str] = None
    duration: Optional[float] = None
    type: Optional[str] = None
    photos: List[PhotoRequest] = Field(default_factory=list)


class TravelCreateRequest(RequestModel):
    """Travel creation payload."""

    title: Optional[str] = None
    date: str
    points: List[PointRequest] = Field(default_factory=list)


class PointUpdateRequest(RequestModel):
    """
    Point of a partial update.
    ``id`` 0 (or an id the travel does not have) creates a new point.
    """

    id: int = 0
    name: Optional[str] = None
    address: Optional[str] = None
    type: Optional[str] = None
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None
    note: Optional[str] = None
    duration: Optional[float] = None
    coordinates: Optional[CoordinatesRequest] = None
    photos: Optional[List[PhotoRequest]] = None


class TravelUpdateRequest(RequestModel):
    """Partial travel update; absent fields are left unchanged."""

    title: Optional[str] = None
    date: Optional[str] = None
    tags: Optional[List[str]] = None
    points: Optional[List[PointUpdateRequest]] = None


class ShareRequest(RequestModel):
    """Tag list that publishes a travel; null clears it."""

    tags: Optional[List[str]] = None


# ============== Responses ==============


class CoordinatesResponse(BaseModel):
    id: Optional[int] = None
    lat: float
    lon: float

    model_config = ConfigDict(from_attributes=True)


class PhotoResponse(BaseModel):
    id: int
    file_path: str

    model_config = ConfigDict(from_attributes=True)


class PointResponse(BaseModel):
    """Point with coordinates and photos."""

    id: int
    name: str
    address: str
    type: str
    note: str = ""
    departure_time: Optional[time] = None
    arrival_time: Optional[time] = None
    duration: Optional[float] = None
    coordinates: Optional[CoordinatesResponse] = None
    photos: List[PhotoResponse] = []

    model_config = ConfigDict(from_attributes=True)


class TravelSummary(BaseModel):
    """Travel without its points."""

    id: int
    title: str
    date: datetime
    user_id: int
    likes_count: int
    tags: List[str] = []

    model_config = ConfigDict(from_attributes=True)


class TravelResponse(TravelSummary):
    """Travel with its ordered points."""

    points: List[PointResponse] = []


class FeedUser(BaseModel):
    id: int
    username: str

    model_config = ConfigDict(from_attributes=True)


class FeedItem(BaseModel):
    """Published travel as shown in the feed."""

    id: int
    title: str
    date: datetime
    user: FeedUser
    points: List[PointResponse] = []
    tags: List[str] = []
    likes_count: int

    model_config = ConfigDict(from_attributes=True)


class FeedPage(BaseModel):
    items: List[FeedItem]
    total_count: int
    page: int
    page_size: int
    total_pages: int


class LikesResponse(BaseModel):
    likes_count: int


class PhotoDeleteResponse(BaseModel):
    success: bool = True
    deleted_photo_id: int
