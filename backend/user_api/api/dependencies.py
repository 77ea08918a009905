from dataclasses import dataclass
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from user_api.core.config import settings
from user_api.core.database import get_db
from user_api.core.errors import UnauthorizedError
from user_api.core.security import decode_access_token
from user_api.storage.user_store import SQLUserStore, UserStore, memory_store

# Extracts "Authorization: Bearer <token>"; missing headers are reported by us, not FastAPI
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """Identity bound from a verified token. Not proof the account still exists."""

    id: int
    email: str


def get_user_store(db: Session = Depends(get_db)) -> UserStore:
    """
    Dependency providing the configured User Store.

    The SQL backend wraps the request's session from get_db, which closes it
    afterwards. Sessions connect lazily, so the memory backend never touches
    the database.
    """
    if settings.USER_STORE_BACKEND == "memory":
        return memory_store
    return SQLUserStore(db)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CurrentUser:
    """
    Access gate for protected routes.

    Verifies the bearer token and returns the caller's identity. It does not
    look the user up: services re-resolve the id against the store, so a
    deleted account surfaces as 404 there.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("No token provided. Please login first.")

    # Raises InvalidTokenError / ExpiredTokenError, both 401
    payload = decode_access_token(credentials.credentials)
    return CurrentUser(id=payload.user_id, email=payload.email)
