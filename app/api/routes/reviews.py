"""Review endpoints that address a review directly."""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.routes.auth import get_current_user
from app.core.auth import rate_limit_public
from app.db.session import get_db
from app.models.user import User
from app.services import review_service

router = APIRouter(prefix="/reviews", tags=["reviews"], dependencies=[Depends(rate_limit_public)])


class ReviewDeleted(BaseModel):
    message: str
    average_rating: float


@router.delete("/{review_id}", response_model=ReviewDeleted)
def delete_review(
    review_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ReviewDeleted:
    """Delete one of the caller's own reviews."""
    average = review_service.delete_review(db, current_user, review_id)
    return ReviewDeleted(message="Review deleted successfully", average_rating=average)
