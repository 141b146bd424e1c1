"""Campus resource (library, office, lab...) shown on the map and in the feed."""
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base

if TYPE_CHECKING:
    from app.models.favorite import Favorite
    from app.models.review import Review
    from app.models.user import User


class Resource(Base):
    """A campus resource owned by the user who created it."""

    __tablename__ = "resources"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", server_default="", nullable=False)
    location: Mapped[str] = mapped_column(String(500), default="", server_default="", nullable=False)
    hours: Mapped[str] = mapped_column(String(500), default="", server_default="", nullable=False)
    category: Mapped[str] = mapped_column(
        String(100), default="", server_default="", nullable=False, index=True,
    )
    coordinates: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True, comment='JSON text: {"lat": float, "lng": float}',
    )
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # ── Derived caches, always rewritten from reviews / favorites ──
    average_rating: Mapped[float] = mapped_column(
        Float, default=0.0, server_default="0", nullable=False,
    )
    favorite_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        default=func.now(), server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=func.now(), onupdate=func.now(), server_default=func.now(),
    )

    owner: Mapped["User"] = relationship(back_populates="resources")
    reviews: Mapped[list["Review"]] = relationship(
        back_populates="resource",
        cascade="all, delete-orphan",
        order_by="Review.created_at",
    )
    favorites: Mapped[list["Favorite"]] = relationship(
        back_populates="resource",
        cascade="all, delete-orphan",
    )
