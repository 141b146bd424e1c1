"""Favorite subsystem: idempotent favorite/unfavorite with a guarded count.

``Resource.favorite_count`` only moves when a Favorite row was actually
inserted or deleted, and is then rewritten from COUNT(*) of the rows in the
same transaction.
"""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.models.favorite import Favorite
from app.models.resource import Resource

logger = logging.getLogger(__name__)

FAVORITED = "favorited"
ALREADY_FAVORITED = "already_favorited"
UNFAVORITED = "unfavorited"
NOT_FAVORITED = "not_favorited"

ACTIONS = ("favorite", "unfavorite")


def recompute_favorite_count(db: Session, resource: Resource) -> int:
    db.flush()
    count = (
        db.query(func.count())
        .select_from(Favorite)
        .filter(Favorite.resource_id == resource.id)
        .scalar()
    )
    resource.favorite_count = int(count or 0)
    return resource.favorite_count


def _lock_resource(db: Session, resource_id: Optional[str]) -> Resource:
    if not resource_id:
        raise ValidationError("Resource ID is required", field="id")
    resource = db.query(Resource).filter(Resource.id == resource_id).with_for_update().first()
    if resource is None:
        raise NotFoundError("Resource not found")
    return resource


def favorite(db: Session, user_id: str, resource_id: str) -> tuple[str, Resource]:
    """Add (user, resource) to favorites. A second call is a no-op."""
    resource = _lock_resource(db, resource_id)
    if db.get(Favorite, (user_id, resource.id)) is not None:
        db.rollback()
        return ALREADY_FAVORITED, _reload(db, resource_id)

    db.add(Favorite(user_id=user_id, resource_id=resource.id))
    try:
        recompute_favorite_count(db, resource)
        db.commit()
    except IntegrityError:
        # A concurrent request inserted the same pair first
        db.rollback()
        logger.info("Concurrent favorite of %s by %s; treating as already favorited", resource_id, user_id)
        return ALREADY_FAVORITED, _reload(db, resource_id)
    except SQLAlchemyError:
        db.rollback()
        raise
    logger.info("Resource %s favorited by %s (count=%d)", resource_id, user_id, resource.favorite_count)
    return FAVORITED, resource


def unfavorite(db: Session, user_id: str, resource_id: str) -> tuple[str, Resource]:
    """Remove (user, resource) from favorites. Nothing to remove is a no-op."""
    resource = _lock_resource(db, resource_id)
    deleted = (
        db.query(Favorite)
        .filter(Favorite.user_id == user_id, Favorite.resource_id == resource.id)
        .delete(synchronize_session="fetch")
    )
    if not deleted:
        db.rollback()
        return NOT_FAVORITED, _reload(db, resource_id)

    try:
        recompute_favorite_count(db, resource)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    logger.info("Resource %s unfavorited by %s (count=%d)", resource_id, user_id, resource.favorite_count)
    return UNFAVORITED, resource


def apply_action(db: Session, user_id: str, resource_id: Optional[str], action: Optional[str]) -> tuple[str, Resource]:
    """Dispatch ``favorite`` / ``unfavorite``; the action picks the relation change, never the count."""
    if not resource_id or not action:
        raise ValidationError(
            "Resource ID and action are required",
            field="id" if not resource_id else "action",
        )
    if action == "favorite":
        return favorite(db, user_id, resource_id)
    if action == "unfavorite":
        return unfavorite(db, user_id, resource_id)
    raise ValidationError(f"Invalid action: expected one of {', '.join(ACTIONS)}", field="action")


def _reload(db: Session, resource_id: str) -> Resource:
    resource = db.get(Resource, resource_id)
    if resource is None:
        raise NotFoundError("Resource not found")
    return resource
