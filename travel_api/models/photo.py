"""
Photo model.
The image itself lives in the uploads directory; the row keeps its relative path.
"""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, DateTime, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from travel_api.database import Base

if TYPE_CHECKING:
    from travel_api.models.point import TravelPoint


class Photo(Base):
    """Photo attached to a travel point."""

    __tablename__ = "photos"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    point_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("travel_points.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    point: Mapped["TravelPoint"] = relationship("TravelPoint", back_populates="photos")

    def __repr__(self) -> str:
        return f"<Photo(id={self.id}, file_path={self.file_path})>"
