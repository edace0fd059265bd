import datetime
import logging
import uuid
from typing import List, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.orm import Session

from notes_manager.api.config import Settings, get_settings
from notes_manager.api.errors import AuthenticationError, WeakCredential
from notes_manager.api.schemas import TokenClaims
from notes_manager.db.db import get_db
from notes_manager.db.models import User

logger = logging.getLogger(__name__)

# Password hashing setup
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
# auto_error is off so a missing header goes through the same 401 path as a bad token
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# ==== Passwords ====

# PUBLIC_INTERFACE
def get_password_hash(password: str) -> str:
    """Hash the plain password."""
    return pwd_context.hash(password)


# PUBLIC_INTERFACE
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against stored hash."""
    return pwd_context.verify(plain_password, hashed_password)


def password_policy_violations(password: str, min_length: int) -> List[str]:
    violations = []
    if len(password) < min_length:
        violations.append(f"at least {min_length} characters")
    if not any(c.islower() for c in password):
        violations.append("a lowercase letter")
    if not any(c.isupper() for c in password):
        violations.append("an uppercase letter")
    if not any(c.isdigit() for c in password):
        violations.append("a digit")
    return violations


# PUBLIC_INTERFACE
def check_password_policy(password: str, min_length: int) -> None:
    """Raise WeakCredential naming every rule the password fails."""
    violations = password_policy_violations(password, min_length)
    if violations:
        raise WeakCredential("Password must contain " + ", ".join(violations))


# ==== Tokens ====

# PUBLIC_INTERFACE
def create_access_token(
    user: User,
    settings: Settings,
    now: Optional[datetime.datetime] = None,
    expires_delta: Optional[datetime.timedelta] = None,
) -> str:
    """
    Issue a signed session token for the user.

    The token binds the user id as `sub`, the email, a fresh `jti` and an
    expiry `access_token_expire_minutes` after issuance.
    """
    issued_at = now or datetime.datetime.now(datetime.timezone.utc)
    expire = issued_at + (expires_delta or datetime.timedelta(minutes=settings.access_token_expire_minutes))
    claims = TokenClaims(
        sub=str(user.id),
        email=user.email,
        jti=uuid.uuid4().hex,
        iat=int(issued_at.timestamp()),
        exp=int(expire.timestamp()),
    )
    to_encode = claims.model_dump()
    if settings.jwt_issuer:
        to_encode["iss"] = settings.jwt_issuer
    if settings.jwt_audience:
        to_encode["aud"] = settings.jwt_audience
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


# PUBLIC_INTERFACE
def decode_access_token(token: str, settings: Settings) -> TokenClaims:
    """Check signature, expiry and claim shape; raise AuthenticationError on any failure."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as exc:
        logger.warning("Rejected session token: %s", exc)
        raise AuthenticationError() from exc
    try:
        return TokenClaims.model_validate(payload)
    except SchemaValidationError as exc:
        logger.warning("Rejected session token with malformed claims")
        raise AuthenticationError() from exc


# ==== Session verifier dependencies ====

# PUBLIC_INTERFACE
def get_current_user_id(
    token: Optional[str] = Depends(oauth2_scheme),
    settings: Settings = Depends(get_settings),
) -> int:
    """Resolve the bearer token to the caller's user id, fails with 401 if invalid."""
    if not token:
        raise AuthenticationError("Not authenticated")
    claims = decode_access_token(token, settings)
    try:
        return int(claims.sub)
    except ValueError as exc:
        raise AuthenticationError() from exc


# PUBLIC_INTERFACE
def get_current_user(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> User:
    """Get current user from JWT token, fails with 401 if the user no longer exists."""
    user = db.get(User, user_id)
    if user is None:
        logger.warning("Token subject %s does not resolve to a user", user_id)
        raise AuthenticationError("User not found")
    return user
