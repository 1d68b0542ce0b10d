"""
Travel service: creation, partial update, publishing, feed, likes and
photo removal.

Photo files are written before the rows that reference them are
committed, and files of removed rows are deleted only after a successful
commit. A failed commit removes the files written for it.
"""
import math
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from travel_api.exceptions import BadRequestError, NotFoundError
from travel_api.models import (
    DEFAULT_POINT_TYPE,
    Coordinates,
    Photo,
    Travel,
    TravelPoint,
    TravelTag,
    User,
)
from travel_api.schemas.travel import (
    PhotoRequest,
    TravelCreateRequest,
    TravelUpdateRequest,
)
from travel_api.services.reconciler import (
    PointChanges,
    PointDraft,
    SetValue,
    UNSET,
    default_title,
    parse_point_draft,
    parse_travel_date,
    parse_travel_update,
    plan_reconciliation,
    resolve,
)
from travel_api.services.storage import PhotoStorage
from travel_api.utils.logger import log_info, log_warning
from travel_api.utils.prometheus_metrics import likes_total, travel_operations_total


def _graph_options():
    """Eager loads for a travel with its whole point graph."""
    return (
        selectinload(Travel.points).selectinload(TravelPoint.coordinates),
        selectinload(Travel.points).selectinload(TravelPoint.photos),
        selectinload(Travel.tag_links),
    )


class TravelService:
    """
    Service for travels and everything hanging off them.
    """

    def __init__(self, db: AsyncSession, storage: PhotoStorage):
        self.db = db
        self.storage = storage

    # ============== Create ==============

    async def create_travel(self, user_id: int, request: TravelCreateRequest) -> Travel:
        """
        Create a travel with its points and photos.

        Args:
            user_id: Owner
            request: Creation payload

        Returns:
            Created Travel with points loaded

        Raises:
            NotFoundError: Unknown user
            BadRequestError: No points, bad date/time, bad or oversized photo
        """
        if await self.db.get(User, user_id) is None:
            raise NotFoundError(f"User with id {user_id} not found")
        if not request.points:
            raise BadRequestError("At least one point is required")

        travel_date = parse_travel_date(request.date)
        drafts = [parse_point_draft(point, self.storage.decode) for point in request.points]

        written: List[str] = []
        try:
            points = [
                await self._build_point(draft, position, written)
                for position, draft in enumerate(drafts)
            ]
            travel = Travel(
                user_id=user_id,
                title=request.title or default_title(travel_date),
                date=travel_date,
                likes_count=0,
                points=points,
                tag_links=[],
            )
            self.db.add(travel)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self.storage.remove_many(written)
            travel_operations_total.labels(operation="create", result="failure").inc()
            raise

        travel_operations_total.labels(operation="create", result="success").inc()
        log_info(
            "Travel created",
            event="travel",
            travel_id=travel.id,
            user_id=user_id,
            points=len(points),
            photos=len(written),
        )
        return travel

    async def _build_point(self, draft: PointDraft, position: int, written: List[str]) -> TravelPoint:
        photos = []
        for decoded in draft.photos:
            path = await self.storage.save(decoded)
            written.append(path)
            photos.append(Photo(file_path=path))
        return TravelPoint(
            position=position,
            name=draft.name,
            address=draft.address,
            type=draft.type or DEFAULT_POINT_TYPE,
            departure_time=draft.departure_time,
            arrival_time=draft.arrival_time,
            note=draft.note,
            duration=draft.duration,
            coordinates=Coordinates(lat=draft.lat, lon=draft.lon),
            photos=photos,
        )

    # ============== Partial update ==============

    async def update_travel(self, travel_id: int, request: TravelUpdateRequest) -> Travel:
        """
        Apply a partial update and reconcile points and photos.

        The request is validated completely before anything changes, so a
        rejected request leaves both the database and the uploads
        directory untouched.

        Args:
            travel_id: Travel to update
            request: PATCH body

        Returns:
            Updated Travel with its point graph loaded

        Raises:
            NotFoundError: Unknown travel
            BadRequestError: Any invalid value in the request
        """
        travel = await self._get_travel_graph(travel_id)
        if travel is None:
            raise NotFoundError(f"Travel with id {travel_id} not found")

        changes = parse_travel_update(
            request,
            existing_point_ids=[point.id for point in travel.points],
            decode=self.storage.decode,
        )

        written: List[str] = []
        removed: List[str] = []
        try:
            travel.title = resolve(changes.title, travel.title, travel.title)
            travel.date = resolve(changes.date, travel.date, travel.date)
            if changes.tags is not UNSET:
                travel.set_tags(resolve(changes.tags, travel.tags, []))

            if changes.points is not None:
                await self._reconcile_points(travel, changes.points, written, removed)

            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            self.storage.remove_many(written)
            travel_operations_total.labels(operation="update", result="failure").inc()
            log_warning(
                "Travel update failed",
                event="travel",
                travel_id=travel_id,
                error_type=type(e).__name__,
                error=str(e)[:200],
            )
            raise

        self.storage.remove_many(removed)
        travel_operations_total.labels(operation="update", result="success").inc()
        log_info(
            "Travel updated",
            event="travel",
            travel_id=travel_id,
            photos_added=len(written),
            photos_removed=len(removed),
        )
        return travel

    async def _reconcile_points(
        self,
        travel: Travel,
        requested: Sequence[PointChanges],
        written: List[str],
        removed: List[str],
    ) -> None:
        plan = plan_reconciliation(
            {point.id: point for point in travel.points},
            requested,
            key=lambda changes: changes.point_id,
        )

        resulting: Dict[int, TravelPoint] = {}
        for point in plan.to_delete:
            removed.extend(photo.file_path for photo in point.photos)
            travel.points.remove(point)

        for point, changes in plan.to_update:
            await self._apply_point_changes(point, changes, written, removed)
            resulting[id(changes)] = point

        for changes in plan.to_insert:
            point = await self._insert_point(changes, written)
            travel.points.append(point)
            resulting[id(changes)] = point

        ordered: List[TravelPoint] = []
        for changes in requested:
            point = resulting.get(id(changes))
            if point is not None and point not in ordered:
                ordered.append(point)
        for position, point in enumerate(ordered):
            point.position = position
        travel.points = ordered

    async def _apply_point_changes(
        self,
        point: TravelPoint,
        changes: PointChanges,
        written: List[str],
        removed: List[str],
    ) -> None:
        point.name = resolve(changes.name, point.name, point.name)
        point.address = resolve(changes.address, point.address, point.address)
        point.type = resolve(changes.type, point.type, point.type)
        point.departure_time = resolve(changes.departure_time, point.departure_time, None)
        point.arrival_time = resolve(changes.arrival_time, point.arrival_time, None)
        point.note = resolve(changes.note, point.note, "")
        point.duration = resolve(changes.duration, point.duration, None)

        if isinstance(changes.coordinates, SetValue):
            requested = changes.coordinates.value
            if point.coordinates is None:
                point.coordinates = Coordinates(lat=requested.lat, lon=requested.lon)
            else:
                point.coordinates.lat = requested.lat
                point.coordinates.lon = requested.lon

        if isinstance(changes.photos, SetValue):
            await self._reconcile_photos(point, changes, written, removed)

    async def _reconcile_photos(
        self,
        point: TravelPoint,
        changes: PointChanges,
        written: List[str],
        removed: List[str],
    ) -> None:
        indexed: List[Tuple[int, PhotoRequest]] = list(enumerate(changes.photos.value))
        plan = plan_reconciliation(
            {photo.id: photo for photo in point.photos},
            indexed,
            key=lambda item: item[1].id,
        )

        for photo in plan.to_delete:
            removed.append(photo.file_path)
            point.photos.remove(photo)

        # Unknown non-zero ids carry no content to store and are ignored
        for index, photo_request in plan.to_insert:
            decoded = changes.decoded_photos.get(index)
            if photo_request.id == 0 and decoded is not None:
                path = await self.storage.save(decoded)
                written.append(path)
                point.photos.append(Photo(file_path=path))

    async def _insert_point(self, changes: PointChanges, written: List[str]) -> TravelPoint:
        request = changes.request
        photos = []
        for index in sorted(changes.decoded_photos):
            path = await self.storage.save(changes.decoded_photos[index])
            written.append(path)
            photos.append(Photo(file_path=path))

        return TravelPoint(
            name=resolve(changes.name, "", ""),
            address=resolve(changes.address, "", ""),
            type=resolve(changes.type, DEFAULT_POINT_TYPE, DEFAULT_POINT_TYPE),
            departure_time=resolve(changes.departure_time, None, None),
            arrival_time=resolve(changes.arrival_time, None, None),
            note=resolve(changes.note, "", ""),
            duration=resolve(changes.duration, None, None),
            coordinates=Coordinates(lat=request.coordinates.lat, lon=request.coordinates.lon),
            photos=photos,
        )

    # ============== Publishing ==============

    async def share_travel(self, travel_id: int, tags: Optional[List[str]]) -> Travel:
        """
        Replace the tag list; a travel with tags shows up in the feed.

        Args:
            travel_id: Travel to publish
            tags: New tags, None clears them

        Raises:
            NotFoundError: Unknown travel
        """
        result = await self.db.execute(
            select(Travel).where(Travel.id == travel_id).options(selectinload(Travel.tag_links))
        )
        travel = result.scalar_one_or_none()
        if travel is None:
            raise NotFoundError(f"Travel with id {travel_id} not found")

        travel.set_tags(tags if tags is not None else [])
        await self.db.commit()

        travel_operations_total.labels(operation="share", result="success").inc()
        log_info("Travel shared", event="travel", travel_id=travel_id, tags=len(travel.tag_links))
        return travel

    # ============== Reads ==============

    async def get_feed(
        self,
        page: int,
        page_size: int,
        search: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> Tuple[List[Travel], int]:
        """
        Published travels, newest first.

        Args:
            page: 1-based page number
            page_size: Items per page
            search: Substring of the title
            tag: Exact tag the travel must carry

        Returns:
            Tuple of (travels on the page, total matching count)
        """
        query = select(Travel).where(Travel.tag_links.any())
        if search:
            query = query.where(Travel.title.contains(search, autoescape=True))
        if tag:
            query = query.where(Travel.tag_links.any(TravelTag.name == tag))

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))

        result = await self.db.execute(
            query.order_by(Travel.date.desc(), Travel.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .options(*_graph_options(), selectinload(Travel.user))
        )
        return list(result.scalars().all()), total or 0

    @staticmethod
    def total_pages(total_count: int, page_size: int) -> int:
        return math.ceil(total_count / page_size) if page_size else 0

    async def get_tags(self) -> List[str]:
        """Distinct tags of published travels, sorted."""
        result = await self.db.execute(
            select(TravelTag.name).distinct().order_by(TravelTag.name)
        )
        return list(result.scalars().all())

    async def get_user_routes(self, user_id: int) -> List[Travel]:
        """All travels of a user with their point graph."""
        result = await self.db.execute(
            select(Travel)
            .where(Travel.user_id == user_id)
            .order_by(Travel.id)
            .options(*_graph_options())
        )
        return list(result.scalars().all())

    async def get_travel(self, travel_id: int) -> Optional[Travel]:
        """Travel with tags, no points."""
        result = await self.db.execute(
            select(Travel).where(Travel.id == travel_id).options(selectinload(Travel.tag_links))
        )
        return result.scalar_one_or_none()

    async def get_points(self, travel_id: int) -> List[TravelPoint]:
        """Points of a travel in order."""
        result = await self.db.execute(
            select(TravelPoint)
            .where(TravelPoint.travel_id == travel_id)
            .order_by(TravelPoint.position, TravelPoint.id)
            .options(selectinload(TravelPoint.coordinates), selectinload(TravelPoint.photos))
        )
        return list(result.scalars().all())

    async def _get_travel_graph(self, travel_id: int) -> Optional[Travel]:
        result = await self.db.execute(
            select(Travel).where(Travel.id == travel_id).options(*_graph_options())
        )
        return result.scalar_one_or_none()

    # ============== Delete ==============

    async def delete_travel(self, travel_id: int) -> None:
        """
        Delete a travel, its points, photos and photo files.

        Raises:
            NotFoundError: Unknown travel
        """
        travel = await self._get_travel_graph(travel_id)
        if travel is None:
            raise NotFoundError(f"Travel with id {travel_id} not found")

        files = [photo.file_path for point in travel.points for photo in point.photos]
        await self.db.delete(travel)
        await self.db.commit()

        self.storage.remove_many(files)
        travel_operations_total.labels(operation="delete", result="success").inc()
        log_info("Travel deleted", event="travel", travel_id=travel_id, photos_removed=len(files))

    async def delete_photo(self, point_id: int, photo_id: int) -> None:
        """
        Delete one photo of a point and its file.

        Raises:
            NotFoundError: No such photo on that point
        """
        result = await self.db.execute(
            select(Photo).where(Photo.id == photo_id, Photo.point_id == point_id)
        )
        photo = result.scalar_one_or_none()
        if photo is None:
            raise NotFoundError("Photo not found")

        file_path = photo.file_path
        await self.db.delete(photo)
        await self.db.commit()

        self.storage.remove(file_path)
        log_info("Photo deleted", event="travel", point_id=point_id, photo_id=photo_id)

    # ============== Likes ==============

    async def like(self, travel_id: int) -> int:
        """Increment the like counter; returns the new count."""
        return await self._change_likes(travel_id, Travel.likes_count + 1, "like")

    async def unlike(self, travel_id: int) -> int:
        """Decrement the like counter, never below zero; returns the new count."""
        decremented = case((Travel.likes_count > 0, Travel.likes_count - 1), else_=0)
        return await self._change_likes(travel_id, decremented, "unlike")

    async def _change_likes(self, travel_id: int, new_value, action: str) -> int:
        result = await self.db.execute(
            update(Travel)
            .where(Travel.id == travel_id)
            .values(likes_count=new_value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError(f"Travel with id {travel_id} not found")

        likes_count = await self.db.scalar(
            select(Travel.likes_count).where(Travel.id == travel_id)
        )
        await self.db.commit()

        likes_total.labels(action=action).inc()
        return likes_count
