import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from notes_manager.api.config import Settings
from notes_manager.api.errors import DuplicateEmail, InvalidCredentials, UserNotFound
from notes_manager.api.schemas import (
    LoginRequest, RegisterRequest, SessionResponse, UpdateProfileRequest, UserInfo,
)
from notes_manager.api.security import (
    check_password_policy, create_access_token, get_password_hash, verify_password,
)
from notes_manager.db.models import User, normalize_email

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get a user by email address, compared case-insensitively."""
    return db.execute(
        select(User).where(User.normalized_email == normalize_email(email))
    ).scalar_one_or_none()


# PUBLIC_INTERFACE
def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    """Get a user by ID, or None if not found."""
    return db.get(User, user_id)


def _session_for(user: User, settings: Settings) -> SessionResponse:
    return SessionResponse(
        token=create_access_token(user, settings),
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
    )


# PUBLIC_INTERFACE
def register(db: Session, data: RegisterRequest, settings: Settings) -> SessionResponse:
    """Create a new user and issue a session straight away.

    Raises DuplicateEmail if the address is taken and WeakCredential if the
    password fails the policy.
    """
    logger.info("Starting registration process")
    if get_user_by_email(db, data.email) is not None:
        logger.warning("Registration failed: email already registered")
        raise DuplicateEmail()
    check_password_policy(data.password, settings.password_min_length)

    user = User(
        email=data.email,
        normalized_email=normalize_email(data.email),
        password_hash=get_password_hash(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        description="",
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        # a concurrent registration won the unique index
        db.rollback()
        raise DuplicateEmail() from exc
    db.refresh(user)
    logger.info("User %s registered successfully", user.id)
    return _session_for(user, settings)


# PUBLIC_INTERFACE
def login(db: Session, data: LoginRequest, settings: Settings) -> SessionResponse:
    """Verify credentials and issue a session.

    Unknown email and wrong password raise the same InvalidCredentials error;
    only the log records which one happened.
    """
    user = get_user_by_email(db, data.email)
    if user is None:
        logger.warning("Login failed: no user with the given email")
        raise InvalidCredentials()
    if not verify_password(data.password, user.password_hash):
        logger.warning("Login failed: invalid password for user %s", user.id)
        raise InvalidCredentials()
    logger.info("User %s logged in successfully", user.id)
    return _session_for(user, settings)


# PUBLIC_INTERFACE
def get_profile(db: Session, user_id: int) -> UserInfo:
    user = get_user_by_id(db, user_id)
    if user is None:
        raise UserNotFound()
    return UserInfo.model_validate(user)


# PUBLIC_INTERFACE
def update_profile(db: Session, user_id: int, data: UpdateProfileRequest) -> User:
    """Update name and description. Email and password are not editable here."""
    user = get_user_by_id(db, user_id)
    if user is None:
        raise UserNotFound()
    user.first_name = data.first_name
    user.last_name = data.last_name
    user.description = data.description or ""
    db.commit()
    db.refresh(user)
    logger.info("Profile updated for user %s", user.id)
    return user
