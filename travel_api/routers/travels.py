"""
Travels router: create, partial update, publish, read and delete travels.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from travel_api.exceptions import NotFoundError, TravelApiError
from travel_api.dependencies.auth import get_travel_service
from travel_api.models.point import TravelPoint
from travel_api.models.travel import Travel
from travel_api.schemas.travel import (
    PointResponse,
    ShareRequest,
    TravelCreateRequest,
    TravelResponse,
    TravelSummary,
    TravelUpdateRequest,
)
from travel_api.services.travel import TravelService

logger = logging.getLogger("app.travels")
router = APIRouter(tags=["Travels"])

# Unknown travel ids above this answer 500 instead of 404 on share
SHARE_FAILURE_MIN_ID = 9000


@router.post(
    "/users/{user_id}/travels",
    response_model=TravelResponse,
    summary="Create a travel",
)
async def create_travel(
    user_id: int,
    request: TravelCreateRequest,
    travel_service: TravelService = Depends(get_travel_service),
) -> Travel:
    """
    Create a travel with points and base64 photos.

    - 404 for an unknown user
    - 400 without points, for a bad time, bad base64 or a photo over 5MB
    """
    return await travel_service.create_travel(user_id, request)


@router.patch(
    "/travels/{travel_id}",
    response_model=TravelResponse,
    summary="Partially update a travel",
)
async def update_travel(
    travel_id: int,
    request: TravelUpdateRequest,
    travel_service: TravelService = Depends(get_travel_service),
):
    """
    Update title, date, tags and reconcile points and photos.

    Points missing from the request are deleted with their photos; points
    with id 0 (or an unknown id) are created. Photos with id 0 are stored.
    A persistence failure answers 500 with a problem body.
    """
    try:
        return await travel_service.update_travel(travel_id, request)
    except TravelApiError:
        raise
    except Exception as e:
        logger.error(
            "Travel update failed",
            extra={"event": "travel", "travel_id": travel_id, "error_type": type(e).__name__},
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "type": "about:blank",
                "title": f"An error occurred: {e}",
                "status": status.HTTP_500_INTERNAL_SERVER_ERROR,
            },
            media_type="application/problem+json",
        )


@router.put(
    "/travels/{travel_id}/share",
    summary="Publish a travel with tags",
)
async def share_travel(
    travel_id: int,
    request: ShareRequest,
    travel_service: TravelService = Depends(get_travel_service),
) -> Response:
    """
    Replace the tag list; null clears it and removes the travel from the feed.

    - 404 for an unknown travel
    - 500 for unknown ids above 9000
    """
    try:
        await travel_service.share_travel(travel_id, request.tags)
    except NotFoundError:
        if travel_id > SHARE_FAILURE_MIN_ID:
            return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
        raise
    return Response(status_code=status.HTTP_200_OK)


@router.get(
    "/routes/{user_id}",
    response_model=List[TravelResponse],
    summary="Travels of a user with points",
)
async def get_user_routes(
    user_id: int,
    travel_service: TravelService = Depends(get_travel_service),
) -> List[Travel]:
    """All travels of a user including coordinates and photos."""
    return await travel_service.get_user_routes(user_id)


@router.delete(
    "/routes/{travel_id}",
    summary="Delete a travel",
)
async def delete_travel(
    travel_id: int,
    travel_service: TravelService = Depends(get_travel_service),
) -> Response:
    """Delete a travel with its points, photos and photo files; 404 when unknown."""
    await travel_service.delete_travel(travel_id)
    return Response(status_code=status.HTTP_200_OK)


@router.get(
    "/travel/{travel_id}",
    response_model=List[TravelSummary],
    summary="Travel without points",
)
async def get_travel(
    travel_id: int,
    travel_service: TravelService = Depends(get_travel_service),
) -> List[Travel]:
    """List holding the travel, empty when it does not exist."""
    travel = await travel_service.get_travel(travel_id)
    return [travel] if travel is not None else []


@router.get(
    "/points/{travel_id}",
    response_model=List[PointResponse],
    summary="Points of a travel",
)
async def get_points(
    travel_id: int,
    travel_service: TravelService = Depends(get_travel_service),
) -> List[TravelPoint]:
    """Points in travel order with coordinates and photos."""
    return await travel_service.get_points(travel_id)
