"""Profile selection and authentication routes."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session as DbSession

from drivetest.config import ACCESS_TOKEN_EXPIRE_MINUTES
from drivetest.database import get_db
from drivetest.dependencies.auth import get_current_user, get_optional_user
from drivetest.models.auth import (
    MessageResponse,
    ProfileResponse,
    TokenResponse,
    UserListResponse,
    UserLogin,
    UserRegister,
    UserSummary,
)
from drivetest.models.db.user import User
from drivetest.services import question_service
from drivetest.services.auth_service import (
    check_profile_password,
    create_user,
    get_user_by_id,
    get_user_by_name,
    invalidate_session,
    issue_token,
    list_users,
    verify_token,
)
from drivetest.services.image_service import get_profile_image_url

router = APIRouter(prefix="/api/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)


def user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        name=user.name,
        profile_image_url=get_profile_image_url(user.id, user.profile_image),
        has_password=user.has_password,
    )


def user_profile(user: User) -> ProfileResponse:
    return ProfileResponse(
        id=user.id,
        name=user.name,
        profile_image_url=get_profile_image_url(user.id, user.profile_image),
        has_password=user.has_password,
        default_license_type_id=user.default_license_type_id,
        test_auto_advance=user.test_auto_advance,
        created_at=user.created_at,
    )


def _token_response(db: DbSession, user: User) -> TokenResponse:
    return TokenResponse(
        access_token=issue_token(db, user),
        token_type="bearer",
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=user_summary(user),
    )


@router.get("/users", response_model=UserListResponse)
async def list_profiles(
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User | None, Depends(get_optional_user)],
) -> dict:
    """Profiles available on the selection screen."""
    return {
        "users": [user_summary(user) for user in list_users(db)],
        "current_user_id": current_user.id if current_user else None,
    }


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserRegister,
    db: Annotated[DbSession, Depends(get_db)],
) -> TokenResponse:
    """Create a profile and sign in as it."""
    if get_user_by_name(db, data.name):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Profile name already taken",
        )
    question_service.require_license_type(db, data.default_license_type_id)

    user = create_user(db, data.name, data.password, data.default_license_type_id)
    return _token_response(db, user)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: UserLogin,
    db: Annotated[DbSession, Depends(get_db)],
) -> TokenResponse:
    """Select a profile, checking its password when it has one."""
    user = get_user_by_id(db, data.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
        )

    if not check_profile_password(user, data.password):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="The provided password is incorrect.",
        )

    return _token_response(db, user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[DbSession, Depends(get_db)],
) -> MessageResponse:
    """Logout and invalidate current session."""
    if credentials is None:
        return MessageResponse(message="Already logged out")

    payload = verify_token(credentials.credentials)
    if payload and payload.get("jti"):
        invalidate_session(db, payload["jti"])

    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=ProfileResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> ProfileResponse:
    """Get current user info."""
    return user_profile(current_user)
