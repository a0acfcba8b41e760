"""
Question bank models: license types, categories, questions, answers and signs.
Read-mostly reference data.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from drivetest.database import Base


question_license_type = Table(
    "license_type_question",
    Base.metadata,
    Column("question_id", ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True),
    Column("license_type_id", ForeignKey("license_types.id", ondelete="CASCADE"), primary_key=True),
)

question_sign = Table(
    "question_sign",
    Base.metadata,
    Column("question_id", ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True),
    Column("sign_id", ForeignKey("signs.id", ondelete="CASCADE"), primary_key=True),
)


class LicenseType(Base):
    """Driving-license category. Parents (e.g. "B") group children (e.g. "B1")."""

    __tablename__ = "license_types"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("license_types.id", ondelete="SET NULL"), nullable=True
    )
    is_parent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    parent: Mapped["LicenseType | None"] = relationship(
        "LicenseType", remote_side=[id], back_populates="children"
    )
    children: Mapped[list["LicenseType"]] = relationship(
        "LicenseType", back_populates="parent", order_by="LicenseType.id"
    )
    questions: Mapped[list["Question"]] = relationship(
        "Question", secondary=question_license_type, back_populates="license_types"
    )

    @property
    def scope_ids(self) -> list[int]:
        """License type ids whose questions are eligible under this type."""
        ids = [self.id]
        if self.is_parent:
            ids.extend(child.id for child in self.children)
        return ids

    @property
    def display_name(self) -> str:
        """Code with children, e.g. "B, B1"."""
        if not self.is_parent:
            return self.code
        return ", ".join([self.code, *(child.code for child in self.children)])


class QuestionCategory(Base):
    """Topic grouping for questions."""

    __tablename__ = "question_categories"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    questions: Mapped[list["Question"]] = relationship(
        "Question", back_populates="question_category"
    )


class Sign(Base):
    """Road sign referenced by questions."""

    __tablename__ = "signs"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Question(Base):
    """Theory question with its answer choices."""

    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    question_category_id: Mapped[int] = mapped_column(
        ForeignKey("question_categories.id"), nullable=False, index=True
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    full_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    image_custom: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_short_image: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_small_answers: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    question_category: Mapped["QuestionCategory"] = relationship(
        "QuestionCategory", back_populates="questions"
    )
    answers: Mapped[list["Answer"]] = relationship(
        "Answer",
        back_populates="question",
        order_by="Answer.position",
        cascade="all, delete-orphan",
    )
    license_types: Mapped[list["LicenseType"]] = relationship(
        "LicenseType", secondary=question_license_type, back_populates="questions"
    )
    signs: Mapped[list["Sign"]] = relationship("Sign", secondary=question_sign)

    @property
    def correct_answer(self) -> "Answer | None":
        """The answer flagged correct (exactly one by data-entry rules)."""
        return next((answer for answer in self.answers if answer.is_correct), None)


class Answer(Base):
    """Answer choice of a question."""

    __tablename__ = "answers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    position: Mapped[int] = mapped_column(default=0, nullable=False)

    question: Mapped["Question"] = relationship("Question", back_populates="answers")
