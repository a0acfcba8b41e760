"""Test session Pydantic models."""
from pydantic import BaseModel, Field

from drivetest.config import (
    FAILURE_THRESHOLD_RANGE,
    QUESTION_COUNT_RANGE,
    TIME_PER_QUESTION_RANGE,
)
from drivetest.models.db.test_result import TestType


class TestConfiguration(BaseModel):
    """Test configuration as chosen by the user (or stored in a template)."""

    test_type: TestType
    license_type_id: int | None = None
    question_count: int = Field(..., ge=QUESTION_COUNT_RANGE[0], le=QUESTION_COUNT_RANGE[1])
    time_per_question: int = Field(
        ..., ge=TIME_PER_QUESTION_RANGE[0], le=TIME_PER_QUESTION_RANGE[1]
    )
    failure_threshold: int = Field(
        ..., ge=FAILURE_THRESHOLD_RANGE[0], le=FAILURE_THRESHOLD_RANGE[1]
    )
    category_ids: list[int] = Field(default_factory=list)
    auto_advance: bool | None = None


class TestStartRequest(TestConfiguration):
    """Start a new test, optionally replacing the active one."""

    abandon_active: bool = False
    test_template_id: int | None = None


class ReplaceActiveRequest(BaseModel):
    """Body for quick start, redo and new-similar actions."""

    abandon_active: bool = False


class AnswerRequest(BaseModel):
    question_id: int
    answer_id: int
    remaining_time: int


class SkipRequest(BaseModel):
    question_id: int


class PauseRequest(BaseModel):
    current_question_index: int = Field(..., ge=0)
    remaining_time: int


class CompleteRequest(BaseModel):
    remaining_time: int | None = None


class AnswerResponse(BaseModel):
    is_correct: bool
    correct_answer_id: int | None
    correct_count: int
    wrong_count: int
    has_exceeded_mistakes: bool
    allowed_wrong: int
    status: str
