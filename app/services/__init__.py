"""Application services."""
from app.services.favorite_service import apply_action
from app.services.notification_service import notify_owner_of_review, send_test_notification
from app.services.user_service import authenticate, signup

__all__ = ["apply_action", "authenticate", "notify_owner_of_review", "send_test_notification", "signup"]
