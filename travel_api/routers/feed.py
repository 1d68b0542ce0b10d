"""
Feed router: published travels, tags and likes.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from travel_api.dependencies.auth import get_travel_service
from travel_api.schemas.travel import FeedItem, FeedPage, LikesResponse
from travel_api.services.travel import TravelService

router = APIRouter(tags=["Feed"])


@router.get(
    "/feed",
    response_model=FeedPage,
    summary="Published travels, newest first",
)
async def get_feed(
    page: int = Query(1, ge=1),
    page_size: int = Query(5, ge=1, le=100, alias="pageSize"),
    search: Optional[str] = Query(None, description="Substring of the title"),
    tag: Optional[str] = Query(None, description="Tag the travel must carry"),
    travel_service: TravelService = Depends(get_travel_service),
) -> FeedPage:
    """
    Travels with at least one tag, optionally filtered by title and tag.
    """
    travels, total_count = await travel_service.get_feed(page, page_size, search, tag)
    return FeedPage(
        items=[FeedItem.model_validate(travel) for travel in travels],
        total_count=total_count,
        page=page,
        page_size=page_size,
        total_pages=TravelService.total_pages(total_count, page_size),
    )


@router.get(
    "/tags",
    response_model=List[str],
    summary="Tags in use",
)
async def get_tags(travel_service: TravelService = Depends(get_travel_service)) -> List[str]:
    """Distinct tags of published travels, sorted."""
    return await travel_service.get_tags()


@router.post(
    "/posts/{post_id}/like",
    response_model=LikesResponse,
    summary="Like a travel",
)
async def like_post(
    post_id: int,
    travel_service: TravelService = Depends(get_travel_service),
) -> LikesResponse:
    likes_count = await travel_service.like(post_id)
    return LikesResponse(likes_count=likes_count)


@router.delete(
    "/posts/{post_id}/like",
    response_model=LikesResponse,
    summary="Remove a like",
)
async def unlike_post(
    post_id: int,
    travel_service: TravelService = Depends(get_travel_service),
) -> LikesResponse:
    """The counter never goes below zero."""
    likes_count = await travel_service.unlike(post_id)
    return LikesResponse(likes_count=likes_count)
