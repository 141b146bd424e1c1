"""Resource, review and favorite schemas."""
import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.review import MAX_RATING, MIN_RATING


class Coordinates(BaseModel):
    """Map position of a resource."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


def _parse_coordinates(v: Any) -> Any:
    """Accept a dict, a Coordinates, or the JSON text the map form posts."""
    if isinstance(v, str):
        v = v.strip()
        if not v or v == "null":
            return None
        try:
            return json.loads(v)
        except json.JSONDecodeError:
            raise ValueError('coordinates must be JSON like {"lat": 47.65, "lng": -122.30}')
    return v


class ResourceFields(BaseModel):
    """Editable resource fields. Used as-is for partial updates."""

    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=500)
    hours: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=100)
    coordinates: Optional[Coordinates] = None

    @field_validator("coordinates", mode="before")
    @classmethod
    def parse_coordinates(cls, v: Any) -> Any:
        return _parse_coordinates(v)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip()
            if not v:
                raise ValueError("name must not be blank")
        return v


class ResourceCreate(ResourceFields):
    """New resource: only ``name`` is required."""

    name: str = Field(..., min_length=1, max_length=255)


class ReviewCreate(BaseModel):
    """Body of POST /resources/{id}."""

    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING, strict=True)
    comment: Optional[str] = Field(None, max_length=5000)


class PersonRead(BaseModel):
    """Public display fields of a user."""

    id: str
    name: Optional[str] = None
    avatar_url: str


class OwnerRead(PersonRead):
    email: str


class ReviewRead(BaseModel):
    id: str
    resource_id: str
    user_id: str
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: PersonRead


class ResourceRead(BaseModel):
    id: str
    user_id: str
    name: str
    description: str
    location: str
    hours: str
    category: str
    coordinates: Optional[Coordinates] = None
    image_url: Optional[str] = None
    average_rating: float
    favorite_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    owner: OwnerRead
    reviews: list[ReviewRead] = Field(default_factory=list)
    is_favorited: bool = False


class FavoriteActionResponse(BaseModel):
    status: str
    resource_id: str
    favorite_count: int
    is_favorited: bool


class MessageResponse(BaseModel):
    message: str
