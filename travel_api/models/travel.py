"""
Travel model: a user-authored trip made of ordered points.
"""
from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import String, DateTime, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from travel_api.database import Base

if TYPE_CHECKING:
    from travel_api.models.user import User
    from travel_api.models.point import TravelPoint


class Travel(Base):
    """Travel owned by exactly one user."""

    __tablename__ = "travels"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    likes_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="travels")
    points: Mapped[List["TravelPoint"]] = relationship(
        "TravelPoint",
        back_populates="travel",
        cascade="all, delete-orphan",
        order_by="TravelPoint.position",
    )
    tag_links: Mapped[List["TravelTag"]] = relationship(
        "TravelTag",
        back_populates="travel",
        cascade="all, delete-orphan",
        order_by="TravelTag.position",
    )

    @property
    def tags(self) -> List[str]:
        """Tag names in the order they were given."""
        return [link.name for link in self.tag_links]

    def set_tags(self, names: List[str]) -> None:
        """Replace the whole tag list."""
        self.tag_links = [
            TravelTag(name=name, position=index) for index, name in enumerate(names)
        ]

    def __repr__(self) -> str:
        return f"<Travel(id={self.id}, title={self.title})>"


class TravelTag(Base):
    """
    One free-text tag of a travel.
    A travel with at least one tag is published to the feed.
    """

    __tablename__ = "travel_tags"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    travel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("travels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    travel: Mapped["Travel"] = relationship("Travel", back_populates="tag_links")

    def __repr__(self) -> str:
        return f"<TravelTag(travel_id={self.travel_id}, name={self.name})>"
