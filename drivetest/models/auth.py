"""Pydantic models for profile selection and authentication."""
from datetime import datetime

from pydantic import BaseModel, Field

from drivetest.config import PASSWORD_MIN_LENGTH


class UserRegister(BaseModel):
    """Profile creation request. Password is optional."""

    name: str = Field(..., min_length=1, max_length=255)
    password: str | None = Field(None, min_length=PASSWORD_MIN_LENGTH, max_length=100)
    default_license_type_id: int | None = None


class UserLogin(BaseModel):
    """Profile selection request."""

    user_id: int
    password: str | None = None


class UserSummary(BaseModel):
    """Profile as shown on the selection screen."""

    id: int
    name: str
    profile_image_url: str | None
    has_password: bool


class UserListResponse(BaseModel):
    users: list[UserSummary]
    current_user_id: int | None = None


class TokenResponse(BaseModel):
    """Bearer token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserSummary


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str


class ProfileResponse(BaseModel):
    """User profile response."""

    id: int
    name: str
    profile_image_url: str | None
    has_password: bool
    default_license_type_id: int | None
    test_auto_advance: bool
    created_at: datetime


class ProfileUpdateRequest(BaseModel):
    """Profile update request. Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=255)
    default_license_type_id: int | None = None
    test_auto_advance: bool | None = None


class PasswordUpdateRequest(BaseModel):
    """Password change. An empty password removes protection."""

    current_password: str | None = None
    password: str | None = Field(None, max_length=100)


class ProfileImageResponse(BaseModel):
    """Profile image upload response."""

    profile_image_url: str
