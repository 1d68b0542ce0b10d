"""
Photos router: removal of a single photo from a point.
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from travel_api.dependencies.auth import get_travel_service
from travel_api.exceptions import NotFoundError
from travel_api.schemas.travel import PhotoDeleteResponse
from travel_api.services.travel import TravelService

router = APIRouter(tags=["Photos"])


@router.delete(
    "/points/{point_id}/photos/{photo_id}",
    response_model=PhotoDeleteResponse,
    summary="Delete a photo",
)
async def delete_photo(
    point_id: int,
    photo_id: int,
    travel_service: TravelService = Depends(get_travel_service),
):
    """
    Delete the photo row and its file.

    The photo must belong to the given point, otherwise 404.
    """
    try:
        await travel_service.delete_photo(point_id, photo_id)
    except NotFoundError as e:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"success": False, "message": e.detail},
        )
    return PhotoDeleteResponse(success=True, deleted_photo_id=photo_id)
