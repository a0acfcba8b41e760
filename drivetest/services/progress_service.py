"""Service layer for per-user question progress (mastery and bookmarks)."""
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session as DbSession

from drivetest.models.db.progress import UserQuestionProgress
from drivetest.utils import utc_now


def get_progress(db: DbSession, user_id: int, question_id: int) -> UserQuestionProgress | None:
    return db.execute(
        select(UserQuestionProgress).where(
            UserQuestionProgress.user_id == user_id,
            UserQuestionProgress.question_id == question_id,
        )
    ).scalar_one_or_none()


def get_or_create_progress(db: DbSession, user_id: int, question_id: int) -> UserQuestionProgress:
    """Get the progress row, adding a fresh one to the session if missing."""
    progress = get_progress(db, user_id, question_id)
    if progress is None:
        progress = UserQuestionProgress(
            user_id=user_id,
            question_id=question_id,
            times_correct=0,
            times_wrong=0,
            is_bookmarked=False,
        )
        db.add(progress)
    return progress


def record_answer(
    db: DbSession,
    user_id: int,
    question_id: int,
    is_correct: bool,
    now: datetime | None = None,
) -> UserQuestionProgress:
    """
    Count an answer towards the question's mastery.
    Does not commit; the caller owns the transaction.
    """
    now = now or utc_now()
    progress = get_or_create_progress(db, user_id, question_id)
    if progress.first_answered_at is None:
        progress.first_answered_at = now
    if is_correct:
        progress.times_correct += 1
    else:
        progress.times_wrong += 1
    progress.last_answered_at = now
    db.flush()
    return progress


def toggle_bookmark(db: DbSession, user_id: int, question_id: int) -> bool:
    """Flip the bookmark flag and return the new value."""
    progress = get_or_create_progress(db, user_id, question_id)
    progress.is_bookmarked = not progress.is_bookmarked
    db.commit()
    return progress.is_bookmarked


def get_bookmarked_question_ids(db: DbSession, user_id: int) -> list[int]:
    return list(
        db.execute(
            select(UserQuestionProgress.question_id).where(
                UserQuestionProgress.user_id == user_id,
                UserQuestionProgress.is_bookmarked == True,  # noqa: E712
            )
        ).scalars().all()
    )


def count_bookmarked(db: DbSession, user_id: int) -> int:
    return db.execute(
        select(func.count(UserQuestionProgress.id)).where(
            UserQuestionProgress.user_id == user_id,
            UserQuestionProgress.is_bookmarked == True,  # noqa: E712
        )
    ).scalar() or 0


def count_studied(db: DbSession, user_id: int) -> int:
    """Questions answered at least once."""
    return db.execute(
        select(func.count(UserQuestionProgress.id)).where(
            UserQuestionProgress.user_id == user_id,
            (UserQuestionProgress.times_correct > 0) | (UserQuestionProgress.times_wrong > 0),
        )
    ).scalar() or 0


def get_progress_map(
    db: DbSession, user_id: int, question_ids: list[int]
) -> dict[int, UserQuestionProgress]:
    """Progress rows keyed by question id."""
    if not question_ids:
        return {}
    rows = db.execute(
        select(UserQuestionProgress).where(
            UserQuestionProgress.user_id == user_id,
            UserQuestionProgress.question_id.in_(question_ids),
        )
    ).scalars().all()
    return {row.question_id: row for row in rows}
