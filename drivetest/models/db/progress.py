"""Per-user, per-question progress (mastery counters and bookmark)."""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from drivetest.database import Base

if TYPE_CHECKING:
    from drivetest.models.db.question_bank import Question
    from drivetest.models.db.user import User


class UserQuestionProgress(Base):
    """Answer history and bookmark flag of one user for one question."""

    __tablename__ = "user_question_progress"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    times_correct: Mapped[int] = mapped_column(default=0, nullable=False)
    times_wrong: Mapped[int] = mapped_column(default=0, nullable=False)
    is_bookmarked: Mapped[bool] = mapped_column(default=False, nullable=False)
    first_answered_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    last_answered_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_user_question_progress"),
    )

    user: Mapped["User"] = relationship("User", back_populates="question_progress")
    question: Mapped["Question"] = relationship("Question")

    @property
    def mastery_score(self) -> float:
        """
        Mastery of the question in [0, 1].
        Two correct answers without mistakes count as fully mastered.
        """
        if self.times_correct == 0:
            return 0.0
        if self.times_wrong == 0:
            return 1.0 if self.times_correct >= 2 else 0.5
        return self.times_correct / (self.times_correct + self.times_wrong)
