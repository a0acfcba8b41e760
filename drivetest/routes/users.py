"""User profile routes."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session as DbSession

from drivetest.config import PASSWORD_MIN_LENGTH
from drivetest.database import get_db
from drivetest.dependencies.auth import get_current_user
from drivetest.models.auth import (
    MessageResponse,
    PasswordUpdateRequest,
    ProfileImageResponse,
    ProfileResponse,
    ProfileUpdateRequest,
)
from drivetest.models.db.user import User
from drivetest.routes.auth import user_profile
from drivetest.services import question_service
from drivetest.services.auth_service import (
    check_profile_password,
    get_user_by_id,
    get_user_by_name,
    set_password,
)
from drivetest.services.image_service import (
    delete_profile_image,
    get_profile_image_path,
    get_profile_image_url,
    media_type_for,
    save_profile_image,
)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me/profile", response_model=ProfileResponse)
async def get_profile(
    current_user: Annotated[User, Depends(get_current_user)],
) -> ProfileResponse:
    """Get current user's profile."""
    return user_profile(current_user)


@router.patch("/me/profile", response_model=ProfileResponse)
async def update_profile(
    data: ProfileUpdateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> ProfileResponse:
    """Update name, default license type and test preferences."""
    if data.name is not None and data.name != current_user.name:
        if get_user_by_name(db, data.name):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Profile name already taken",
            )
        current_user.name = data.name

    # Explicit null clears the default license type
    if "default_license_type_id" in data.model_fields_set:
        question_service.require_license_type(db, data.default_license_type_id)
        current_user.default_license_type_id = data.default_license_type_id

    if data.test_auto_advance is not None:
        current_user.test_auto_advance = data.test_auto_advance

    db.commit()
    db.refresh(current_user)
    return user_profile(current_user)


@router.put("/me/password", response_model=MessageResponse)
async def update_password(
    data: PasswordUpdateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> MessageResponse:
    """Change the profile password. An empty password removes protection."""
    if current_user.has_password and not check_profile_password(current_user, data.current_password):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="The provided password does not match your current password.",
        )

    new_password = data.password or None
    if new_password is not None and len(new_password) < PASSWORD_MIN_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Password must be at least {PASSWORD_MIN_LENGTH} characters.",
        )

    set_password(db, current_user, new_password)
    if new_password is None:
        return MessageResponse(message="Password removed")
    return MessageResponse(message="Password updated")


@router.post("/me/profile-image", response_model=ProfileImageResponse)
async def upload_profile_image(
    file: UploadFile,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> ProfileImageResponse:
    """Upload a profile image, replacing the previous one."""
    filename = await save_profile_image(file, current_user.id)

    if current_user.profile_image:
        delete_profile_image(current_user.profile_image)

    current_user.profile_image = filename
    db.commit()
    db.refresh(current_user)

    return ProfileImageResponse(
        profile_image_url=get_profile_image_url(current_user.id, filename),
    )


@router.delete("/me/profile-image", response_model=MessageResponse)
async def remove_profile_image(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> MessageResponse:
    """Delete the profile image."""
    if not current_user.profile_image:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No profile image to delete",
        )

    delete_profile_image(current_user.profile_image)
    current_user.profile_image = None
    db.commit()

    return MessageResponse(message="Profile image deleted successfully")


@router.get("/{user_id}/profile-image")
async def get_user_profile_image(
    user_id: int,
    db: Annotated[DbSession, Depends(get_db)],
) -> FileResponse:
    """Get a profile image file (public, shown on the selection screen)."""
    user = get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    image_path = get_profile_image_path(user.profile_image)
    if image_path is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile image not found",
        )

    return FileResponse(
        path=image_path,
        media_type=media_type_for(image_path),
        headers={"Cache-Control": "public, max-age=3600"},
    )
