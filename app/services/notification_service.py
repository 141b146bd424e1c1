"""Notification emails: review alerts for resource owners, test notifications.

Review alerts go out after the review has committed; a mail failure is
logged and does not fail the request.
"""
import logging
from typing import Any

from app.core.config import settings
from app.notifications.emailer import send_email

logger = logging.getLogger(__name__)


def _display_name(user: Any) -> str:
    return (getattr(user, "name", None) or getattr(user, "email", "") or "Someone").strip()


def notify_owner_of_review(review: Any) -> bool:
    """Email the resource owner about a new review, if they opted in.

    Skipped when the reviewer is the owner. Returns True when an email went out.
    """
    resource = review.resource
    owner = resource.owner if resource is not None else None
    if owner is None or owner.id == review.user_id or not owner.email_notifications:
        return False

    stars = "*" * review.rating
    lines = [
        f"Hi {_display_name(owner)},",
        "",
        f"{_display_name(review.user)} rated \"{resource.name}\" {review.rating}/5 ({stars}).",
    ]
    if review.comment:
        lines += ["", f"\"{review.comment}\""]
    lines += [
        "",
        f"Average rating is now {resource.average_rating:.1f}.",
        f"{settings.app_url}/main?resource={resource.id}",
        "",
        "You can turn these emails off in your settings.",
    ]
    try:
        send_email(
            to=owner.email,
            subject=f"New review on {resource.name}",
            body="\n".join(lines),
        )
    except Exception as e:
        logger.error("Failed to send review notification to owner %s: %s", owner.id, e)
        return False
    return True


def send_test_notification(to: str, user: Any) -> None:
    """Send the notification email a user triggers from their settings page."""
    body = "\n".join([
        f"Hi {_display_name(user)},",
        "",
        "This is a notification email from the campus resource finder.",
        "Notifications are working for your account.",
    ])
    send_email(to=to, subject="Notification", body=body)
