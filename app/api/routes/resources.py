"""Resource endpoints: feed, CRUD, reviews on a resource, favorite toggling."""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.api.routes.auth import get_current_user, get_optional_user
from app.api.schemas.resource import (
    Coordinates,
    FavoriteActionResponse,
    MessageResponse,
    OwnerRead,
    PersonRead,
    ResourceCreate,
    ResourceFields,
    ResourceRead,
    ReviewCreate,
    ReviewRead,
)
from app.core.auth import rate_limit_public
from app.core.errors import ValidationError
from app.db.session import get_db
from app.models.resource import Resource
from app.models.review import Review
from app.models.user import User
from app.services import favorite_service, resource_service, review_service
from app.services.user_service import avatar_for

router = APIRouter(prefix="/resources", tags=["resources"], dependencies=[Depends(rate_limit_public)])


def person_read(user: User) -> PersonRead:
    return PersonRead(id=user.id, name=user.name, avatar_url=avatar_for(user))


def review_read(review: Review) -> ReviewRead:
    return ReviewRead(
        id=review.id,
        resource_id=review.resource_id,
        user_id=review.user_id,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
        updated_at=review.updated_at,
        user=person_read(review.user),
    )


def resource_read(resource: Resource, is_favorited: bool = False) -> ResourceRead:
    """Convert Resource ORM (owner + reviews loaded) to ResourceRead."""
    coords = resource_service.parse_coordinates(resource.coordinates)
    owner = resource.owner
    return ResourceRead(
        id=resource.id,
        user_id=resource.user_id,
        name=resource.name,
        description=resource.description or "",
        location=resource.location or "",
        hours=resource.hours or "",
        category=resource.category or "",
        coordinates=Coordinates(**coords) if coords else None,
        image_url=resource.image_url,
        average_rating=resource.average_rating or 0.0,
        favorite_count=resource.favorite_count or 0,
        created_at=resource.created_at,
        updated_at=resource.updated_at,
        owner=OwnerRead(id=owner.id, email=owner.email, name=owner.name, avatar_url=avatar_for(owner)),
        reviews=[review_read(r) for r in resource.reviews],
        is_favorited=is_favorited,
    )


async def submitted_form_keys(request: Request) -> set[str]:
    """Names of the form fields the client actually sent (empty values included)."""
    form = await request.form()
    return set(form.keys())


def _form_fields(model: type[ResourceFields], submitted: set[str], **values) -> ResourceFields:
    """Build a resource schema from form values.

    Fields the client did not send stay unset. A sent but empty field arrives
    as None and is kept as an empty string, so owners can clear it.
    """
    present = {
        k: ("" if v is None else v)
        for k, v in values.items()
        if v is not None or k in submitted
    }
    try:
        return model(**present)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or None
        raise ValidationError(f"{field}: {first.get('msg')}" if field else first.get("msg"), field=field)


# ── Feed ─────────────────────────────────────────────────────────────


@router.get("", response_model=list[ResourceRead])
async def list_resources(
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
) -> list[ResourceRead]:
    """All resources with owner, reviews and the caller's favorite flag."""
    rows = resource_service.list_resources(db, viewer_id=viewer.id if viewer else None)
    return [resource_read(r, fav) for r, fav in rows]


@router.get("/favorites", response_model=list[ResourceRead])
async def list_favorites(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[ResourceRead]:
    """Resources the caller has favorited."""
    return [resource_read(r, True) for r in resource_service.list_favorite_resources(db, current_user.id)]


@router.post("/favorite", response_model=FavoriteActionResponse)
async def toggle_favorite(
    resource_id: Optional[str] = Query(None, alias="id", description="Resource ID"),
    action: Optional[str] = Query(None, description="favorite | unfavorite"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FavoriteActionResponse:
    """Favorite or unfavorite a resource for the caller (idempotent both ways)."""
    status, resource = favorite_service.apply_action(db, current_user.id, resource_id, action)
    return FavoriteActionResponse(
        status=status,
        resource_id=resource.id,
        favorite_count=resource.favorite_count,
        is_favorited=status in (favorite_service.FAVORITED, favorite_service.ALREADY_FAVORITED),
    )


@router.get("/{resource_id}", response_model=ResourceRead)
async def get_resource(
    resource_id: str,
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
) -> ResourceRead:
    resource = resource_service.get_resource(db, resource_id)
    return resource_read(
        resource,
        resource_service.is_favorited(db, resource.id, viewer.id if viewer else None),
    )


# ── Create / update / delete ─────────────────────────────────────────


@router.post("", response_model=ResourceRead, status_code=201)
def create_resource(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    hours: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    coordinates: Optional[str] = Form(None, description='JSON: {"lat": .., "lng": ..}'),
    image: Optional[UploadFile] = File(None),
    submitted: set[str] = Depends(submitted_form_keys),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ResourceRead:
    """Create a resource owned by the caller (multipart form, optional image)."""
    data = _form_fields(
        ResourceCreate,
        submitted,
        name=name, description=description, location=location,
        hours=hours, category=category, coordinates=coordinates,
    )
    resource = resource_service.create_resource(db, current_user.id, data, image=image)
    return resource_read(resource, False)


@router.put("/{resource_id}", response_model=ResourceRead)
def update_resource(
    resource_id: str,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    hours: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    coordinates: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    submitted: set[str] = Depends(submitted_form_keys),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ResourceRead:
    """Owner-only partial update; fields not sent are left unchanged."""
    data = _form_fields(
        ResourceFields,
        submitted,
        name=name, description=description, location=location,
        hours=hours, category=category, coordinates=coordinates,
    )
    resource = resource_service.update_resource(db, current_user.id, resource_id, data, image=image)
    return resource_read(resource, resource_service.is_favorited(db, resource.id, current_user.id))


@router.delete("/{resource_id}", response_model=MessageResponse)
def delete_resource(
    resource_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    """Owner-only delete; the resource's reviews and favorites go with it."""
    resource_service.delete_resource(db, current_user.id, resource_id)
    return MessageResponse(message="Resource deleted successfully")


# ── Reviews ──────────────────────────────────────────────────────────


@router.post("/{resource_id}", response_model=ReviewRead, status_code=201)
def add_review(
    resource_id: str,
    body: ReviewCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ReviewRead:
    """Review a resource; the resource's average rating is recomputed."""
    review = review_service.add_review(
        db, current_user, resource_id, rating=body.rating, comment=body.comment,
    )
    return review_read(review)
