"""
User model for authentication and travel ownership.
"""
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from travel_api.database import Base

if TYPE_CHECKING:
    from travel_api.models.travel import Travel


class User(Base):
    """
    User account.

    Holds a single refresh-token slot: every login or refresh overwrites
    ``refresh_token`` and ``refresh_token_expires_at`` together.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    refresh_token: Mapped[Optional[str]] = mapped_column(
        String(128), index=True, nullable=True
    )
    refresh_token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    # Relationships
    travels: Mapped[List["Travel"]] = relationship(
        "Travel", back_populates="user", cascade="all, delete-orphan"
    )

    def set_refresh_token(self, token: Optional[str], expires_at: Optional[datetime]) -> None:
        """Replace the refresh-token slot."""
        self.refresh_token = token
        self.refresh_token_expires_at = expires_at

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
