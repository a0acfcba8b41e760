"""Question browser Pydantic models."""
from pydantic import BaseModel


class PracticeAnswerRequest(BaseModel):
    answer_id: int


class ProgressCounters(BaseModel):
    times_correct: int
    times_wrong: int
    is_bookmarked: bool


class PracticeAnswerResponse(BaseModel):
    is_correct: bool
    correct_answer_id: int | None
    explanation: str | None
    progress: ProgressCounters


class BookmarkResponse(BaseModel):
    is_bookmarked: bool
