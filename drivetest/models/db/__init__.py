"""Database models."""
from drivetest.models.db.user import AuthSession, User
from drivetest.models.db.question_bank import (
    Answer,
    LicenseType,
    Question,
    QuestionCategory,
    Sign,
)
from drivetest.models.db.progress import UserQuestionProgress
from drivetest.models.db.test_template import TestTemplate
from drivetest.models.db.test_result import TestResult, TestStatus, TestType

__all__ = [
    "AuthSession",
    "User",
    "Answer",
    "LicenseType",
    "Question",
    "QuestionCategory",
    "Sign",
    "UserQuestionProgress",
    "TestTemplate",
    "TestResult",
    "TestStatus",
    "TestType",
]
