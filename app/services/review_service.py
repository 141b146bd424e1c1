"""Review subsystem: add/delete reviews and keep ``average_rating`` in sync.

The average is always recomputed from the full set of current reviews in the
same transaction as the insert/delete, never adjusted incrementally.
"""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.errors import NotFoundError, UnauthorizedError, ValidationError
from app.models.resource import Resource
from app.models.review import MAX_RATING, MIN_RATING, Review
from app.models.user import User
from app.services.notification_service import notify_owner_of_review

logger = logging.getLogger(__name__)


def recompute_average_rating(db: Session, resource: Resource) -> float:
    """Set ``resource.average_rating`` to the mean of its ratings (0.0 when none)."""
    db.flush()
    avg = (
        db.query(func.avg(Review.rating))
        .filter(Review.resource_id == resource.id)
        .scalar()
    )
    resource.average_rating = float(avg) if avg is not None else 0.0
    return resource.average_rating


def _validate_rating(rating) -> int:
    # bool is an int subclass; True must not count as a rating of 1
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("Rating must be an integer", field="rating")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}", field="rating")
    return rating


def _lock_resource(db: Session, resource_id: str) -> Resource:
    resource = db.query(Resource).filter(Resource.id == resource_id).with_for_update().first()
    if resource is None:
        raise NotFoundError("Resource not found")
    return resource


def add_review(
    db: Session,
    user: User,
    resource_id: str,
    rating: int,
    comment: Optional[str] = None,
) -> Review:
    """Create a review and refresh the resource's average in one transaction."""
    rating = _validate_rating(rating)
    comment = (comment or "").strip() or None

    resource = _lock_resource(db, resource_id)
    review = Review(resource_id=resource.id, user_id=user.id, rating=rating, comment=comment)
    db.add(review)
    recompute_average_rating(db, resource)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    logger.info(
        "Review %s added to resource %s by %s (rating=%d, avg=%.2f)",
        review.id, resource_id, user.id, rating, resource.average_rating,
    )

    review = (
        db.query(Review)
        .options(selectinload(Review.user), selectinload(Review.resource).selectinload(Resource.owner))
        .filter(Review.id == review.id)
        .one()
    )
    notify_owner_of_review(review)
    return review


def delete_review(db: Session, user: User, review_id: str) -> float:
    """Author-only delete; returns the resource's new average rating."""
    review = db.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")

    resource = _lock_resource(db, review.resource_id)
    # Re-read under the resource lock; a concurrent delete may have won
    review = (
        db.query(Review)
        .filter(Review.id == review_id)
        .populate_existing()
        .first()
    )
    if review is None:
        db.rollback()
        raise NotFoundError("Review not found")
    if review.user_id != user.id:
        db.rollback()
        logger.info("User %s denied delete on review %s (not author)", user.id, review_id)
        raise UnauthorizedError()

    db.delete(review)
    average = recompute_average_rating(db, resource)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    logger.info("Review %s deleted by %s (resource %s avg=%.2f)", review_id, user.id, resource.id, average)
    return average
