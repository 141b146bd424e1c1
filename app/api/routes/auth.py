"""Authentication endpoints: signup, login, session; current-user dependencies."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import rate_limit_auth
from app.core.errors import UnauthorizedError
from app.core.security import create_access_token, decode_access_token
from app.db.session import get_db
from app.models.user import User
from app.services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])
security = HTTPBearer(auto_error=False)


# --- Schemas ---


class SignupBody(BaseModel):
    # Plain str: the institutional-domain check reports the field itself
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)
    name: Optional[str] = Field(None, max_length=255)


class LoginBody(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=128)


class UserOut(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    avatar_url: str
    email_notifications: bool = True
    push_notifications: bool = False


class SessionUser(BaseModel):
    """What a client sees as 'the current session'."""
    id: str
    email: str
    name: str = ""
    image: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: SessionUser


class SignupResponse(BaseModel):
    message: str
    user: UserOut


def user_out(user: User) -> UserOut:
    """Build UserOut from a User ORM instance. Single source of truth."""
    return UserOut(
        id=user.id,
        email=user.email,
        name=user.name,
        avatar_url=user_service.avatar_for(user),
        email_notifications=user.email_notifications,
        push_notifications=user.push_notifications,
    )


def session_user(user: User) -> SessionUser:
    return SessionUser(
        id=user.id,
        email=user.email,
        name=user.name or "",
        image=user_service.avatar_for(user),
    )


# --- Dependency: get current user from JWT ---


def _user_from_credentials(
    credentials: HTTPAuthorizationCredentials | None,
    db: Session,
) -> User | None:
    if not credentials or credentials.scheme.lower() != "bearer":
        return None
    payload = decode_access_token(credentials.credentials)
    if not payload:
        return None
    user_id = payload.get("user_id")
    if not user_id:
        return None
    return db.get(User, user_id)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Validate Bearer token and return User ORM object. Raises 401 if invalid."""
    user = _user_from_credentials(credentials, db)
    if user is None:
        raise UnauthorizedError(headers={"WWW-Authenticate": "Bearer"})
    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User | None:
    """Like get_current_user but returns None instead of 401 if unauthenticated."""
    return _user_from_credentials(credentials, db)


# --- Endpoints ---


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=201,
    dependencies=[Depends(rate_limit_auth)],
)
def signup(body: SignupBody, db: Session = Depends(get_db)) -> SignupResponse:
    """Create a credential account. Log in separately to get a session."""
    user = user_service.signup(db, email=body.email, password=body.password, name=body.name)
    return SignupResponse(message="User created successfully", user=user_out(user))


@router.post("/login", response_model=LoginResponse, dependencies=[Depends(rate_limit_auth)])
@router.post("/auth/login", response_model=LoginResponse, dependencies=[Depends(rate_limit_auth)])
def login(body: LoginBody, db: Session = Depends(get_db)) -> LoginResponse:
    """Login with email + password, get a bearer session token."""
    user = user_service.authenticate(db, email=body.email, password=body.password)
    token = create_access_token(
        user_id=user.id,
        email=user.email,
        name=user.name,
        image=user_service.avatar_for(user),
    )
    return LoginResponse(access_token=token, user=session_user(user))


@router.get("/auth/session", response_model=SessionUser)
async def current_session(current_user: User = Depends(get_current_user)) -> SessionUser:
    """Return the session view of the authenticated user (avatar re-read from the db)."""
    return session_user(current_user)
