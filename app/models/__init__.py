"""All SQLAlchemy models: single source of truth.

Import models from here:
    from app.models import User, Resource, Review, Favorite
"""
from app.models.base import Base
from app.models.favorite import Favorite
from app.models.resource import Resource
from app.models.review import Review
from app.models.user import User

__all__ = [
    "Base",
    "Favorite",
    "Resource",
    "Review",
    "User",
]
