"""Pydantic models."""
from drivetest.models.auth import (
    MessageResponse,
    PasswordUpdateRequest,
    ProfileImageResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    TokenResponse,
    UserListResponse,
    UserLogin,
    UserRegister,
    UserSummary,
)
from drivetest.models.questions import (
    BookmarkResponse,
    PracticeAnswerRequest,
    PracticeAnswerResponse,
    ProgressCounters,
)
from drivetest.models.templates import TemplateCreate
from drivetest.models.tests import (
    AnswerRequest,
    AnswerResponse,
    CompleteRequest,
    PauseRequest,
    ReplaceActiveRequest,
    SkipRequest,
    TestConfiguration,
    TestStartRequest,
)

__all__ = [
    "MessageResponse",
    "PasswordUpdateRequest",
    "ProfileImageResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "TokenResponse",
    "UserListResponse",
    "UserLogin",
    "UserRegister",
    "UserSummary",
    "BookmarkResponse",
    "PracticeAnswerRequest",
    "PracticeAnswerResponse",
    "ProgressCounters",
    "TemplateCreate",
    "AnswerRequest",
    "AnswerResponse",
    "CompleteRequest",
    "PauseRequest",
    "ReplaceActiveRequest",
    "SkipRequest",
    "TestConfiguration",
    "TestStartRequest",
]
