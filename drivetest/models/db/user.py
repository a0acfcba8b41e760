"""User and AuthSession database models."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from drivetest.database import Base
from drivetest.utils import json_dump, load_json_field

if TYPE_CHECKING:
    from drivetest.models.db.progress import UserQuestionProgress
    from drivetest.models.db.question_bank import LicenseType
    from drivetest.models.db.test_result import TestResult
    from drivetest.models.db.test_template import TestTemplate


class User(Base):
    """Selectable user profile. The password is optional."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str | None] = mapped_column(String(255), nullable=True)
    has_password: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Profile fields
    profile_image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    default_license_type_id: Mapped[int | None] = mapped_column(
        ForeignKey("license_types.id", ondelete="SET NULL"), nullable=True
    )
    test_auto_advance: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    question_filter_preferences_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    sessions: Mapped[list["AuthSession"]] = relationship(
        "AuthSession",
        back_populates="user",
        cascade="all, delete-orphan"
    )
    default_license_type: Mapped["LicenseType | None"] = relationship("LicenseType")
    question_progress: Mapped[list["UserQuestionProgress"]] = relationship(
        "UserQuestionProgress",
        back_populates="user",
        cascade="all, delete-orphan"
    )
    test_templates: Mapped[list["TestTemplate"]] = relationship(
        "TestTemplate",
        back_populates="user",
        cascade="all, delete-orphan"
    )
    test_results: Mapped[list["TestResult"]] = relationship(
        "TestResult",
        back_populates="user",
        cascade="all, delete-orphan"
    )

    @property
    def question_filter_preferences(self) -> dict[str, Any]:
        """Saved question browser filters."""
        return load_json_field(self.question_filter_preferences_json, {})

    @question_filter_preferences.setter
    def question_filter_preferences(self, value: dict[str, Any] | None) -> None:
        self.question_filter_preferences_json = json_dump(value) if value else None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name='{self.name}')>"


class AuthSession(Base):
    """Issued access token, tracked by its JTI so it can be revoked."""

    __tablename__ = "auth_sessions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token_jti: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    last_activity: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="sessions")

    def __repr__(self) -> str:
        return f"<AuthSession(id={self.id}, user_id={self.user_id}, token_jti='{self.token_jti}')>"
