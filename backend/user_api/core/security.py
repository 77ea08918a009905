from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from user_api.core.config import settings
from user_api.core.errors import ExpiredTokenError, InvalidTokenError

# bcrypt generates a salt per hash, so equal passwords never share a hash
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


@dataclass(frozen=True)
class TokenPayload:
    """Identity carried by a verified access token."""

    user_id: int
    email: str


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash using constant-time comparison"""
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Unrecognised or corrupted hash
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    return pwd_context.hash(password)


def create_access_token(user_id: int, email: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token for a user, expiring after the configured lifetime"""
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = settings.access_token_lifetime

    to_encode = {
        "sub": str(user_id),
        "email": email,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> TokenPayload:
    """
    Decode and verify a JWT token.

    Raises ExpiredTokenError once the embedded expiry has passed and
    InvalidTokenError for a bad signature or a malformed payload.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise ExpiredTokenError()
    except JWTError:
        raise InvalidTokenError()

    user_id_str = payload.get("sub")
    email = payload.get("email")
    if user_id_str is None or not isinstance(email, str):
        raise InvalidTokenError()

    # Token stores the id as a string, the database uses an integer
    try:
        user_id = int(user_id_str)
    except (ValueError, TypeError):
        raise InvalidTokenError()

    return TokenPayload(user_id=user_id, email=email)
