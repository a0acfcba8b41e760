"""Authentication dependencies for FastAPI."""
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session as DbSession

from drivetest.database import get_db
from drivetest.models.db.user import User
from drivetest.services.auth_service import (
    extend_session,
    get_active_session,
    get_user_by_id,
    verify_token,
)

# HTTP Bearer scheme for JWT
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _resolve_user(db: DbSession, token: str) -> tuple[User | None, str | None]:
    """Return (user, error detail) for a bearer token."""
    payload = verify_token(token)
    if payload is None:
        return None, "Invalid or expired token"

    # Tokens are only valid while their session is
    jti = payload.get("jti")
    if not jti:
        return None, "Invalid token payload"
    session = get_active_session(db, jti)
    if session is None:
        return None, "Session expired or invalidated"

    user_id = payload.get("sub")
    if user_id is None:
        return None, "Invalid token payload"

    user = get_user_by_id(db, int(user_id))
    if user is None:
        return None, "User not found"

    # Extend session on activity
    extend_session(db, session)
    return user, None


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[DbSession, Depends(get_db)],
) -> User:
    """Get the current authenticated user.

    Raises:
        HTTPException: 401 if not authenticated or token is invalid.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    user, error = _resolve_user(db, credentials.credentials)
    if user is None:
        raise _unauthorized(error or "Not authenticated")
    return user


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[DbSession, Depends(get_db)],
) -> User | None:
    """Get the current user if authenticated, otherwise None."""
    if credentials is None:
        return None
    user, _ = _resolve_user(db, credentials.credentials)
    return user
