"""Dependency injection for FastAPI."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Cookie, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from taskboard.auth.utils import decode_access_token
from taskboard.db.database import SessionLocal
from taskboard.db.models import User
from taskboard.errors import PermissionDenied, TaskboardError, Unauthorized

security = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """Get database session.

    Yields:
        Session: SQLAlchemy session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    access_token: str | None = Cookie(None),
) -> User:
    """Get the current authenticated user from JWT token or cookie.

    Supports both Bearer token (for API clients) and cookie-based auth.

    Args:
        credentials: HTTP Bearer token credentials.
        db: Database session.
        access_token: Access token from cookie.

    Returns:
        User: The authenticated user.

    Raises:
        Unauthorized: If no valid token identifies a user.
        PermissionDenied: If the account is disabled.
    """
    token = None
    if credentials is not None:
        token = credentials.credentials
    elif access_token is not None:
        token = access_token

    if token is None:
        raise Unauthorized("Not authenticated")

    token_data = decode_access_token(token)
    if token_data is None:
        raise Unauthorized("Invalid or expired token")

    user = db.query(User).filter(User.id == token_data.user_id).first()
    if user is None:
        raise Unauthorized("User not found")

    if not user.is_active:
        raise PermissionDenied("User account is disabled")

    return user


async def get_current_user_optional(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    access_token: str | None = Cookie(None),
) -> User | None:
    """Get the current user if authenticated, None otherwise."""
    if credentials is None and access_token is None:
        return None

    try:
        return await get_current_user(credentials, db, access_token)
    except TaskboardError:
        return None


# Type aliases for cleaner dependency injection
DbSession = Annotated[Session, Depends(get_db)]
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentUserOptional = Annotated[User | None, Depends(get_current_user_optional)]
