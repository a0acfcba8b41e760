"""Authentication service for profiles and JWT handling."""
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt
from sqlalchemy.orm import Session as DbSession

from drivetest.config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ALGORITHM,
    SECRET_KEY,
    SESSION_EXTEND_MINUTES,
)
from drivetest.models.db.user import AuthSession, User


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


def check_profile_password(user: User, password: str | None) -> bool:
    """Profiles without a password accept any login."""
    if not user.has_password or not user.hashed_password:
        return True
    if not password:
        return False
    return verify_password(password, user.hashed_password)


def create_access_token(user_id: int, expires_at: datetime) -> tuple[str, str]:
    """Create a JWT access token bound to a fresh session id.

    Returns:
        Tuple of (token, jti)
    """
    jti = str(uuid.uuid4())
    claims = {"sub": str(user_id), "exp": expires_at, "jti": jti}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM), jti


def verify_token(token: str) -> dict | None:
    """Verify and decode a JWT token.

    Returns:
        Decoded token payload or None if invalid.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        return None


def issue_token(db: DbSession, user: User) -> str:
    """Create a token and the session that backs it."""
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    token, jti = create_access_token(user.id, expires_at)
    create_session(db, user.id, jti, expires_at)
    return token


def list_users(db: DbSession) -> list[User]:
    """All profiles ordered by name."""
    return db.query(User).order_by(User.name).all()


def get_user_by_name(db: DbSession, name: str) -> User | None:
    """Get user by profile name."""
    return db.query(User).filter(User.name == name).first()


def get_user_by_id(db: DbSession, user_id: int) -> User | None:
    """Get user by ID."""
    return db.query(User).filter(User.id == user_id).first()


def create_user(
    db: DbSession,
    name: str,
    password: str | None = None,
    default_license_type_id: int | None = None,
) -> User:
    """Create a new profile."""
    user = User(
        name=name,
        hashed_password=hash_password(password) if password else None,
        has_password=bool(password),
        default_license_type_id=default_license_type_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def set_password(db: DbSession, user: User, password: str | None) -> User:
    """Set or clear the profile password."""
    user.hashed_password = hash_password(password) if password else None
    user.has_password = bool(password)
    db.commit()
    db.refresh(user)
    return user


def create_session(
    db: DbSession, user_id: int, token_jti: str, expires_at: datetime
) -> AuthSession:
    """Create a new session for user."""
    session = AuthSession(
        user_id=user_id,
        token_jti=token_jti,
        expires_at=expires_at,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def get_active_session(db: DbSession, token_jti: str) -> AuthSession | None:
    """Get an active session by token JTI."""
    now = datetime.now(timezone.utc)
    return (
        db.query(AuthSession)
        .filter(
            AuthSession.token_jti == token_jti,
            AuthSession.is_active == True,  # noqa: E712
            AuthSession.expires_at > now,
        )
        .first()
    )


def extend_session(db: DbSession, session: AuthSession) -> AuthSession:
    """Extend session expiration and update last activity."""
    now = datetime.now(timezone.utc)
    session.last_activity = now
    session.expires_at = now + timedelta(minutes=SESSION_EXTEND_MINUTES)
    db.commit()
    db.refresh(session)
    return session


def invalidate_session(db: DbSession, token_jti: str) -> None:
    """Invalidate a session by token JTI."""
    session = db.query(AuthSession).filter(AuthSession.token_jti == token_jti).first()
    if session:
        session.is_active = False
        db.commit()


def cleanup_expired_sessions(db: DbSession) -> int:
    """Remove expired sessions from database."""
    now = datetime.now(timezone.utc)
    result = db.query(AuthSession).filter(AuthSession.expires_at < now).delete()
    db.commit()
    return result
