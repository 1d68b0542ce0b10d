"""
Partial-update parsing and collection reconciliation for travels.

A PATCH body is turned into explicit per-field instructions first
(``UNSET`` keeps the stored value, ``CLEAR`` resets it, ``SetValue``
replaces it), with every time, date and photo validated up front. Only a
fully valid request reaches the service that mutates the travel graph.

Child collections (points of a travel, photos of a point) are diffed with
``plan_reconciliation``, which is pure and works on plain mappings.
"""
from dataclasses import dataclass, field
from datetime import datetime, time, timezone
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Hashable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

from pydantic import BaseModel

from travel_api.exceptions import BadRequestError
from travel_api.schemas.travel import (
    PhotoRequest,
    PointRequest,
    PointUpdateRequest,
    TravelUpdateRequest,
)
from travel_api.services.storage import DecodedPhoto

T = TypeVar("T")
E = TypeVar("E")
R = TypeVar("R")


class _Unset:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"


class _Clear:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CLEAR"


UNSET = _Unset()
CLEAR = _Clear()


@dataclass(frozen=True)
class SetValue(Generic[T]):
    """Replace the stored value with ``value``."""

    value: T


FieldUpdate = Union[_Unset, _Clear, SetValue]


def _is_blank(value: Any) -> bool:
    return isinstance(value, (str, list)) and len(value) == 0


def field_update(
    model: BaseModel,
    name: str,
    *,
    on_null: FieldUpdate = UNSET,
    on_blank: Optional[FieldUpdate] = None,
) -> FieldUpdate:
    """
    Classify one field of a partial-update body.

    Args:
        model: Parsed request body
        name: Field name
        on_null: Instruction for an explicit null
        on_blank: Instruction for "" or []; None treats blank as a value

    Returns:
        UNSET when the key is absent, otherwise the instruction for the value
    """
    if name not in model.model_fields_set:
        return UNSET
    value = getattr(model, name)
    if value is None:
        return on_null
    if on_blank is not None and _is_blank(value):
        return on_blank
    return SetValue(value)


def map_value(update: FieldUpdate, fn: Callable[[Any], Any]) -> FieldUpdate:
    """Apply ``fn`` to the payload of a SetValue, pass markers through."""
    if isinstance(update, SetValue):
        return SetValue(fn(update.value))
    return update


def resolve(update: FieldUpdate, current: T, cleared: T) -> T:
    """Value a field ends up with after applying ``update``."""
    if update is UNSET:
        return current
    if update is CLEAR:
        return cleared
    return update.value


# ============== Value parsing ==============


def parse_time_of_day(value: str, label: str) -> time:
    """
    Parse an ISO time of day such as ``10:00`` or ``10:00:00``.

    Raises:
        BadRequestError: "Invalid {label} time format: {value}"
    """
    try:
        parsed = time.fromisoformat(value.strip())
    except (ValueError, AttributeError):
        raise BadRequestError(f"Invalid {label} time format: {value}")
    return parsed.replace(tzinfo=None)


def parse_travel_date(value: str) -> datetime:
    """
    Parse an ISO date or datetime; aware values are converted to naive UTC.

    Raises:
        BadRequestError: "Invalid date format: {value}"
    """
    try:
        parsed = datetime.fromisoformat(value.strip())
    except (ValueError, AttributeError):
        raise BadRequestError(f"Invalid date format: {value}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def default_title(travel_date: datetime) -> str:
    """Title used when a travel is created without one."""
    return f"Trip {travel_date.date().isoformat()}"


# ============== Reconciliation ==============


@dataclass
class ReconciliationPlan(Generic[E, R]):
    """
    Diff between stored children and a requested list.

    ``to_update`` and ``to_insert`` follow request order, ``to_delete``
    follows stored order.
    """

    to_delete: List[E] = field(default_factory=list)
    to_update: List[Tuple[E, R]] = field(default_factory=list)
    to_insert: List[R] = field(default_factory=list)


def plan_reconciliation(
    existing: Mapping[Hashable, E],
    requested: Sequence[R],
    key: Callable[[R], Hashable],
) -> ReconciliationPlan[E, R]:
    """
    Match requested items against stored ones by id.

    A requested id found in ``existing`` updates that item (first
    occurrence wins, repeats are ignored); a requested id of 0 or one not
    in ``existing`` is an insert; stored items nobody asked for are deleted.

    Args:
        existing: Stored items by id
        requested: Requested items
        key: Extracts the id of a requested item

    Returns:
        ReconciliationPlan
    """
    plan: ReconciliationPlan[E, R] = ReconciliationPlan()
    matched = set()
    for item in requested:
        item_id = key(item)
        if item_id and item_id in existing:
            if item_id in matched:
                continue
            matched.add(item_id)
            plan.to_update.append((existing[item_id], item))
        else:
            plan.to_insert.append(item)

    plan.to_delete = [obj for obj_id, obj in existing.items() if obj_id not in matched]
    return plan


# ============== Parsed payloads ==============


@dataclass
class PointDraft:
    """Validated point of a creation payload."""

    name: str
    address: str
    lat: float
    lon: float
    type: Optional[str]
    departure_time: Optional[time]
    arrival_time: Optional[time]
    note: str
    duration: Optional[float]
    photos: List[DecodedPhoto]


@dataclass
class PointChanges:
    """Validated point of a partial update."""

    point_id: int
    request: PointUpdateRequest
    name: FieldUpdate = UNSET
    address: FieldUpdate = UNSET
    type: FieldUpdate = UNSET
    departure_time: FieldUpdate = UNSET
    arrival_time: FieldUpdate = UNSET
    note: FieldUpdate = UNSET
    duration: FieldUpdate = UNSET
    coordinates: FieldUpdate = UNSET
    photos: FieldUpdate = UNSET
    # Decoded content of photos the request marks as new, keyed by list index
    decoded_photos: Dict[int, DecodedPhoto] = field(default_factory=dict)


@dataclass
class TravelChanges:
    """Validated partial update of a travel."""

    title: FieldUpdate = UNSET
    date: FieldUpdate = UNSET
    tags: FieldUpdate = UNSET
    points: Optional[List[PointChanges]] = None


PhotoDecoder = Callable[[PhotoRequest], Optional[DecodedPhoto]]


def parse_point_draft(point: PointRequest, decode: PhotoDecoder) -> PointDraft:
    """Validate one point of a creation payload."""
    departure = parse_time_of_day(point.departure_time, "departure") if point.departure_time else None
    arrival = parse_time_of_day(point.arrival_time, "arrival") if point.arrival_time else None
    photos = [decoded for decoded in (decode(p) for p in point.photos) if decoded is not None]
    return PointDraft(
        name=point.name,
        address=point.address,
        lat=point.coordinates.lat,
        lon=point.coordinates.lon,
        type=point.type or None,
        departure_time=departure,
        arrival_time=arrival,
        note=point.note or "",
        duration=point.duration,
        photos=photos,
    )


def parse_point_changes(
    point: PointUpdateRequest,
    decode: PhotoDecoder,
    is_new: bool,
) -> PointChanges:
    """
    Validate one point of a partial update.

    Args:
        point: Requested point
        decode: Photo decoder
        is_new: Whether the point will be inserted rather than updated

    Raises:
        BadRequestError: Bad time, bad photo, or a new point without coordinates
    """
    if is_new and point.coordinates is None:
        raise BadRequestError("Coordinates are required for new point")

    changes = PointChanges(
        point_id=point.id,
        request=point,
        name=field_update(point, "name", on_blank=UNSET),
        address=field_update(point, "address", on_blank=UNSET),
        type=field_update(point, "type", on_blank=UNSET),
        departure_time=map_value(
            field_update(point, "departure_time", on_blank=UNSET),
            lambda v: parse_time_of_day(v, "departure"),
        ),
        arrival_time=map_value(
            field_update(point, "arrival_time", on_blank=UNSET),
            lambda v: parse_time_of_day(v, "arrival"),
        ),
        note=field_update(point, "note", on_blank=CLEAR),
        duration=field_update(point, "duration"),
        coordinates=field_update(point, "coordinates"),
        photos=field_update(point, "photos"),
    )

    if isinstance(changes.photos, SetValue):
        for index, photo in enumerate(changes.photos.value):
            if is_new or photo.id == 0:
                decoded = decode(photo)
                if decoded is not None:
                    changes.decoded_photos[index] = decoded
    return changes


def parse_travel_update(
    request: TravelUpdateRequest,
    existing_point_ids: Sequence[int],
    decode: PhotoDecoder,
) -> TravelChanges:
    """
    Validate a whole partial update before anything is mutated.

    Args:
        request: PATCH body
        existing_point_ids: Ids of the travel's stored points
        decode: Photo decoder (raises on invalid or oversized content)

    Returns:
        TravelChanges

    Raises:
        BadRequestError: On the first invalid value
    """
    changes = TravelChanges(
        title=field_update(request, "title", on_blank=UNSET),
        date=map_value(field_update(request, "date", on_blank=UNSET), parse_travel_date),
        tags=field_update(request, "tags", on_null=CLEAR),
    )

    points = field_update(request, "points")
    if isinstance(points, SetValue):
        if not points.value:
            raise BadRequestError("At least one point is required")
        known = set(existing_point_ids)
        changes.points = [
            parse_point_changes(point, decode, is_new=not (point.id and point.id in known))
            for point in points.value
        ]
    return changes
