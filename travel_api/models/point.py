"""
Travel point model: a single stop within a travel.
"""
from datetime import time
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, Integer, ForeignKey, Float, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from travel_api.database import Base

if TYPE_CHECKING:
    from travel_api.models.travel import Travel
    from travel_api.models.photo import Photo


DEFAULT_POINT_TYPE = "attraction"


class TravelPoint(Base):
    """Stop of a travel with location, timing, note and photos."""

    __tablename__ = "travel_points"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    travel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("travels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0)

    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    address: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    departure_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    arrival_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False, default=DEFAULT_POINT_TYPE)
    duration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # seconds
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Relationships
    travel: Mapped["Travel"] = relationship("Travel", back_populates="points")
    coordinates: Mapped["Coordinates"] = relationship(
        "Coordinates",
        back_populates="point",
        cascade="all, delete-orphan",
        uselist=False,
    )
    photos: Mapped[List["Photo"]] = relationship(
        "Photo",
        back_populates="point",
        cascade="all, delete-orphan",
        order_by="Photo.id",
    )

    def __repr__(self) -> str:
        return f"<TravelPoint(id={self.id}, name={self.name})>"


class Coordinates(Base):
    """Coordinate pair, lives and dies with its point."""

    __tablename__ = "coordinates"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    point_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("travel_points.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lon: Mapped[float] = mapped_column(Float, nullable=False)

    point: Mapped["TravelPoint"] = relationship("TravelPoint", back_populates="coordinates")

    def __repr__(self) -> str:
        return f"<Coordinates(lat={self.lat}, lon={self.lon})>"
