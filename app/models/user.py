"""User model for authentication and profile settings."""
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base

if TYPE_CHECKING:
    from app.models.resource import Resource


class User(Base):
    """Campus user: email login, optional password hash, profile fields."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True,
    )
    # Null for accounts that never set a password; such accounts cannot log in
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # ── Notification preferences ──
    email_notifications: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="1", nullable=False,
    )
    push_notifications: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="0", nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        default=func.now(), server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=func.now(), onupdate=func.now(), server_default=func.now(),
    )

    resources: Mapped[list["Resource"]] = relationship(back_populates="owner")
