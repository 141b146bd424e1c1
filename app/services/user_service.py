"""Credential store: signup, login verification, profile settings."""
import logging
from dataclasses import dataclass
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from app.core.security import hash_password, verify_password
from app.models.user import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def is_institutional_email(email: str) -> bool:
    """True when the address is well formed and on one of the configured campus domains."""
    email = normalize_email(email)
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    domain = email.split("@", 1)[1]
    return domain in settings.institutional_domains_list


def checked_email(email: str) -> str:
    """Syntax-check an address and return it normalized (lower-cased)."""
    try:
        result = validate_email(normalize_email(email), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email address: {e}", field="email")
    return result.normalized.lower()


def _institutional_error() -> ValidationError:
    domains = ", ".join(f"@{d}" for d in settings.institutional_domains_list)
    return ValidationError(f"Please use an institutional email address ({domains})", field="email")


def _check_password_strength(password: str, field: str = "password") -> None:
    if len(password or "") < settings.min_password_length:
        raise ValidationError(
            f"Password must be at least {settings.min_password_length} characters",
            field=field,
        )


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.get(User, user_id)


def avatar_for(user: Optional[User]) -> str:
    """Public avatar URL, falling back to the static placeholder."""
    if user is not None and user.avatar_url:
        return user.avatar_url
    return settings.default_avatar_url


def signup(db: Session, email: str, password: str, name: Optional[str] = None) -> User:
    """Create a credential account. No session is issued here."""
    email = checked_email(email)
    if not is_institutional_email(email):
        raise _institutional_error()
    _check_password_strength(password)

    if get_user_by_email(db, email):
        raise ConflictError("User already exists", field="email")

    user = User(
        email=email,
        password_hash=hash_password(password),
        name=(name or "").strip() or None,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same address
        db.rollback()
        raise ConflictError("User already exists", field="email")
    db.refresh(user)
    logger.info("New user registered: id=%s", user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """Return the user for a correct email/password pair.

    Unknown email, an account without a password, and a wrong password all
    raise the same InvalidCredentialsError. Nothing is written.
    """
    user = get_user_by_email(db, email)
    if user is None or not user.password_hash or not verify_password(password, user.password_hash):
        logger.info("Failed login attempt")
        raise InvalidCredentialsError()
    logger.info("User logged in: id=%s", user.id)
    return user


@dataclass
class SettingsUpdate:
    """Partial settings update; None means 'leave unchanged'."""

    name: Optional[str] = None
    email: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None


def update_settings(db: Session, user_id: str, changes: SettingsUpdate) -> tuple[User, bool]:
    """Apply a partial profile/password/notification update.

    Returns (user, changed). Validation happens before anything is written.
    """
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")

    updates: dict = {}
    if changes.name is not None:
        name = changes.name.strip()
        if name and name != user.name:
            updates["name"] = name

    if changes.email is not None:
        new_email = normalize_email(changes.email)
        if new_email and new_email != user.email:
            new_email = checked_email(new_email)
            if not is_institutional_email(new_email):
                raise _institutional_error()
            existing = get_user_by_email(db, new_email)
            if existing is not None and existing.id != user.id:
                raise ConflictError("Email already in use", field="email")
            updates["email"] = new_email

    if changes.email_notifications is not None and changes.email_notifications != user.email_notifications:
        updates["email_notifications"] = changes.email_notifications
    if changes.push_notifications is not None and changes.push_notifications != user.push_notifications:
        updates["push_notifications"] = changes.push_notifications

    if changes.new_password or changes.current_password:
        if not (changes.new_password and changes.current_password):
            missing = "current_password" if not changes.current_password else "new_password"
            raise ValidationError(
                "Both current and new password are required to change the password",
                field=missing,
            )
        if not verify_password(changes.current_password, user.password_hash):
            raise ValidationError("Current password is incorrect", field="current_password")
        _check_password_strength(changes.new_password, field="new_password")
        updates["password_hash"] = hash_password(changes.new_password)

    if not updates:
        return user, False

    for key, value in updates.items():
        setattr(user, key, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already in use", field="email")
    db.refresh(user)
    logger.info("Settings updated for user %s: %s", user.id, sorted(updates.keys()))
    return user, True


def set_avatar(db: Session, user_id: str, image_url: str) -> User:
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    user.avatar_url = image_url
    db.commit()
    db.refresh(user)
    logger.info("Avatar updated for user %s", user.id)
    return user
