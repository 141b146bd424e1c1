"""Resource repository: list, create, update, delete with ownership checks."""
import json
import logging
from typing import Any, Optional

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.api.schemas.resource import Coordinates, ResourceCreate, ResourceFields
from app.core.errors import NotFoundError, UnauthorizedError
from app.models.favorite import Favorite
from app.models.resource import Resource
from app.models.review import Review
from app.services.image_storage import discard_image, is_empty_upload, save_image

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("description", "location", "hours", "category")


def serialize_coordinates(coordinates: Optional[Coordinates]) -> Optional[str]:
    if coordinates is None:
        return None
    return json.dumps({"lat": coordinates.lat, "lng": coordinates.lng})


def parse_coordinates(raw: Optional[str]) -> Optional[dict[str, float]]:
    """Parse stored coordinates text; unreadable values read as None."""
    if not raw:
        return None
    try:
        value: Any = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Ignoring unparseable coordinates %r", raw)
        return None
    if not isinstance(value, dict):
        return None
    try:
        return {"lat": float(value["lat"]), "lng": float(value["lng"])}
    except (KeyError, TypeError, ValueError):
        return None


def _with_relations(query):
    return query.options(
        selectinload(Resource.owner),
        selectinload(Resource.reviews).selectinload(Review.user),
    )


def favorited_ids(db: Session, user_id: Optional[str]) -> set[str]:
    """Resource ids the user has favorited (empty for anonymous callers)."""
    if not user_id:
        return set()
    rows = db.query(Favorite.resource_id).filter(Favorite.user_id == user_id).all()
    return {r[0] for r in rows}


def list_resources(db: Session, viewer_id: Optional[str] = None) -> list[tuple[Resource, bool]]:
    """All resources, newest first, each paired with the viewer's favorite flag."""
    resources = (
        _with_relations(db.query(Resource))
        .order_by(Resource.created_at.desc(), Resource.name)
        .all()
    )
    favs = favorited_ids(db, viewer_id)
    return [(r, r.id in favs) for r in resources]


def list_favorite_resources(db: Session, user_id: str) -> list[Resource]:
    """Resources the user has favorited, most recently favorited first."""
    return (
        _with_relations(db.query(Resource))
        .join(Favorite, Favorite.resource_id == Resource.id)
        .filter(Favorite.user_id == user_id)
        .order_by(Favorite.created_at.desc())
        .all()
    )


def get_resource(db: Session, resource_id: str) -> Resource:
    resource = _with_relations(db.query(Resource)).filter(Resource.id == resource_id).first()
    if resource is None:
        raise NotFoundError("Resource not found")
    return resource


def is_favorited(db: Session, resource_id: str, user_id: Optional[str]) -> bool:
    if not user_id:
        return False
    return db.get(Favorite, (user_id, resource_id)) is not None


def _owned_resource(db: Session, user_id: str, resource_id: str) -> Resource:
    resource = db.query(Resource).filter(Resource.id == resource_id).with_for_update().first()
    if resource is None:
        raise NotFoundError("Resource not found")
    if resource.user_id != user_id:
        logger.info("User %s denied write on resource %s (not owner)", user_id, resource_id)
        raise UnauthorizedError()
    return resource


def _commit_or_discard(db: Session, image_url: Optional[str]) -> None:
    """Commit; if that fails, drop the just-written upload and re-raise."""
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        discard_image(image_url)
        raise


def create_resource(
    db: Session,
    owner_id: str,
    data: ResourceCreate,
    image: Optional[UploadFile] = None,
) -> Resource:
    """Create a resource owned by ``owner_id``.

    The image (if any) is stored first so its URL goes in with the row.
    """
    image_url = None if is_empty_upload(image) else save_image(image, owner_id)

    resource = Resource(
        user_id=owner_id,
        name=data.name,
        coordinates=serialize_coordinates(data.coordinates),
        image_url=image_url,
        average_rating=0.0,
        favorite_count=0,
        **{field: getattr(data, field) or "" for field in _TEXT_FIELDS},
    )
    db.add(resource)
    _commit_or_discard(db, image_url)
    logger.info("Resource %s created by %s", resource.id, owner_id)
    return get_resource(db, resource.id)


def update_resource(
    db: Session,
    user_id: str,
    resource_id: str,
    data: ResourceFields,
    image: Optional[UploadFile] = None,
) -> Resource:
    """Owner-only partial update: only fields present in ``data`` change."""
    resource = _owned_resource(db, user_id, resource_id)

    for field in data.model_fields_set:
        if field == "coordinates":
            resource.coordinates = serialize_coordinates(data.coordinates)
        elif field == "name":
            if data.name:
                resource.name = data.name
        else:
            setattr(resource, field, getattr(data, field) or "")

    image_url = None
    if not is_empty_upload(image):
        # Old file is left on disk
        image_url = save_image(image, user_id)
        resource.image_url = image_url

    _commit_or_discard(db, image_url)
    logger.info("Resource %s updated by %s (%s)", resource_id, user_id, sorted(data.model_fields_set))
    return get_resource(db, resource_id)


def delete_resource(db: Session, user_id: str, resource_id: str) -> None:
    """Owner-only delete. Reviews and favorites go with it in the same transaction."""
    resource = _owned_resource(db, user_id, resource_id)
    db.delete(resource)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    logger.info("Resource %s deleted by %s", resource_id, user_id)
