"""Account settings: profile, password, notification flags, avatar upload."""
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.routes.auth import UserOut, get_current_user, user_out
from app.core.auth import rate_limit_auth
from app.core.errors import ValidationError
from app.db.session import get_db
from app.models.user import User
from app.services import user_service
from app.services.image_storage import discard_image, is_empty_upload, save_image

router = APIRouter(tags=["settings"])


class UpdateSettingsBody(BaseModel):
    """All fields optional (PATCH semantics over PUT)."""
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    current_password: Optional[str] = Field(None, max_length=128)
    new_password: Optional[str] = Field(None, max_length=128)
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None


class UpdateSettingsResponse(BaseModel):
    message: str
    user: UserOut


class ImageUploadResponse(BaseModel):
    image_url: str


@router.put(
    "/settings/update",
    response_model=UpdateSettingsResponse,
    dependencies=[Depends(rate_limit_auth)],
)
def update_settings(
    body: UpdateSettingsBody,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UpdateSettingsResponse:
    """Update the caller's name, email, password and notification preferences."""
    user, changed = user_service.update_settings(
        db,
        current_user.id,
        user_service.SettingsUpdate(**body.model_dump()),
    )
    message = "Settings updated successfully" if changed else "No changes to update"
    return UpdateSettingsResponse(message=message, user=user_out(user))


@router.post("/settings/upload-image", response_model=ImageUploadResponse)
@router.post("/profilePicture", response_model=ImageUploadResponse)
def upload_profile_image(
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ImageUploadResponse:
    """Store an avatar image and point the caller's profile at it."""
    if is_empty_upload(image):
        raise ValidationError("No file uploaded", field="image")
    image_url = save_image(image, current_user.id)
    try:
        user_service.set_avatar(db, current_user.id, image_url)
    except Exception:
        discard_image(image_url)
        raise
    return ImageUploadResponse(image_url=image_url)
