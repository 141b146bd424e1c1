"""Notification endpoint: send the caller a notification email."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr

from app.api.routes.auth import get_current_user
from app.core.auth import rate_limit_auth
from app.core.errors import ServiceUnavailableError, ValidationError
from app.models.user import User
from app.services.notification_service import send_test_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationBody(BaseModel):
    email: Optional[EmailStr] = None


@router.post("", dependencies=[Depends(rate_limit_auth)])
def send_notification(
    body: Optional[NotificationBody] = None,
    current_user: User = Depends(get_current_user),
) -> dict:
    """Email a notification to the caller (or the address in the body)."""
    if not current_user.email_notifications:
        raise ValidationError("Email notifications are turned off for this account", field="email_notifications")
    to = str(body.email) if body and body.email else current_user.email
    try:
        send_test_notification(to=to, user=current_user)
    except Exception as e:
        logger.error("Email notification to user %s failed: %s", current_user.id, e)
        raise ServiceUnavailableError("Failed to send notification")
    return {"message": "Email notification sent successfully"}
