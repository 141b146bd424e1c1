"""JWT session tokens + password hashing (bcrypt via passlib)."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def hash_password(plain: str) -> str:
    """Hash a plain-text password."""
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    """Verify a plain-text password against a hash. A missing hash never matches."""
    if not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        # Malformed stored hash: treat as a failed login, not a server error
        logger.warning("Stored password hash could not be parsed")
        return False


def _secret() -> str:
    secret = settings.jwt_secret_key
    if not secret:
        logger.error("JWT_SECRET is not configured; sessions cannot be issued or verified")
        raise ServiceUnavailableError("Authentication service unavailable")
    return secret


def create_access_token(
    user_id: str,
    email: str,
    name: Optional[str] = None,
    image: Optional[str] = None,
) -> str:
    """Create a signed session token carrying the user's id and email."""
    expire = datetime.now(timezone.utc) + timedelta(days=settings.jwt_expiry_days)
    payload: dict[str, Any] = {
        "sub": email,
        "user_id": user_id,
        "name": name or "",
        "image": image or settings.default_avatar_url,
        "exp": expire,
    }
    return jwt.encode(payload, _secret(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate JWT; return payload or None if invalid."""
    secret = _secret()
    try:
        return jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
