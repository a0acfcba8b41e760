"""Service layer for the question bank: selection, browsing and practice answers."""
import logging
from typing import Any

from fastapi import HTTPException
from sqlalchemy import Select, false, func, or_, select
from sqlalchemy.orm import Session as DbSession, selectinload

from drivetest.config import DEFAULT_PER_PAGE, MAX_PER_PAGE
from drivetest.models.db.progress import UserQuestionProgress
from drivetest.models.db.question_bank import (
    LicenseType,
    Question,
    QuestionCategory,
)
from drivetest.models.db.test_result import TestType
from drivetest.models.db.user import User
from drivetest.services import progress_service
from drivetest.utils import parse_id_list

logger = logging.getLogger(__name__)

# Query parameters that count as an explicit filter selection
BROWSER_FILTER_PARAMS = (
    "license_type",
    "categories",
    "show_inactive",
    "bookmarked",
    "wrong_only",
    "correct_only",
    "unanswered",
    "per_page",
)


def get_license_type(db: DbSession, license_type_id: int) -> LicenseType | None:
    return db.get(LicenseType, license_type_id)


def require_license_type(db: DbSession, license_type_id: int | None) -> LicenseType | None:
    """Resolve an optional license type id, rejecting unknown ids."""
    if license_type_id is None:
        return None
    license_type = get_license_type(db, license_type_id)
    if license_type is None:
        raise HTTPException(status_code=422, detail="Unknown license type")
    return license_type


def require_categories(db: DbSession, category_ids: list[int]) -> None:
    """Reject category filters that reference unknown categories."""
    if not category_ids:
        return
    found = set(
        db.execute(
            select(QuestionCategory.id).where(QuestionCategory.id.in_(category_ids))
        ).scalars().all()
    )
    missing = sorted(set(category_ids) - found)
    if missing:
        raise HTTPException(status_code=422, detail=f"Unknown categories: {missing}")


def list_parent_license_types(db: DbSession) -> list[LicenseType]:
    return list(
        db.execute(
            select(LicenseType)
            .options(selectinload(LicenseType.children))
            .where(LicenseType.is_parent == True)  # noqa: E712
            .order_by(LicenseType.id)
        ).scalars().all()
    )


def list_categories_with_counts(db: DbSession) -> list[tuple[QuestionCategory, int]]:
    """Categories with the number of active questions in each."""
    rows = db.execute(
        select(QuestionCategory, func.count(Question.id))
        .outerjoin(
            Question,
            (Question.question_category_id == QuestionCategory.id)
            & (Question.is_active == True),  # noqa: E712
        )
        .group_by(QuestionCategory.id)
        .order_by(QuestionCategory.id)
    ).all()
    return [(category, count) for category, count in rows]


def count_active_questions(db: DbSession, license_type: LicenseType | None = None) -> int:
    query = select(func.count(Question.id)).where(Question.is_active == True)  # noqa: E712
    if license_type is not None:
        query = query.where(Question.license_types.any(LicenseType.id.in_(license_type.scope_ids)))
    return db.execute(query).scalar() or 0


def active_question_ids(db: DbSession, license_type: LicenseType) -> list[int]:
    """Ids of active questions eligible under a license type (incl. children)."""
    return list(
        db.execute(
            select(Question.id).where(
                Question.is_active == True,  # noqa: E712
                Question.license_types.any(LicenseType.id.in_(license_type.scope_ids)),
            )
        ).scalars().all()
    )


def _with_relations(query: Select) -> Select:
    return query.options(
        selectinload(Question.answers),
        selectinload(Question.signs),
        selectinload(Question.question_category),
        selectinload(Question.license_types),
    )


def _apply_scope(
    query: Select,
    license_type: LicenseType | None,
    category_ids: list[int] | None,
) -> Select:
    if license_type is not None:
        query = query.where(
            Question.license_types.any(LicenseType.id.in_(license_type.scope_ids))
        )
    if category_ids:
        query = query.where(Question.question_category_id.in_(category_ids))
    return query


def select_test_questions(
    db: DbSession,
    user_id: int,
    test_type: str,
    question_count: int,
    license_type: LicenseType | None = None,
    category_ids: list[int] | None = None,
) -> list[Question]:
    """Draw up to question_count eligible active questions in random order."""
    query = _with_relations(select(Question)).where(Question.is_active == True)  # noqa: E712

    if test_type == TestType.BOOKMARKED.value:
        bookmarked_ids = progress_service.get_bookmarked_question_ids(db, user_id)
        query = query.where(Question.id.in_(bookmarked_ids))
    else:
        query = _apply_scope(query, license_type, category_ids)

    query = query.order_by(func.random()).limit(question_count)
    questions = list(db.execute(query).scalars().all())
    logger.debug(
        "Selected %s/%s questions for user %s (%s)",
        len(questions), question_count, user_id, test_type,
    )
    return questions


def _parse_int(name: str, value: object, default: int | None) -> int | None:
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=422, detail=f"Invalid {name}")


def _parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def resolve_browser_filters(user: User, params: dict[str, Any]) -> dict[str, Any]:
    """
    Effective browser filters.
    Explicit query params win and are saved as the user's preferences;
    otherwise the saved preferences apply. Correct/wrong-only filters are
    session scoped and never saved.
    """
    has_filter_params = any(key in params for key in BROWSER_FILTER_PARAMS)
    saved = user.question_filter_preferences

    if has_filter_params:
        filters = {
            "license_type": _parse_int("license_type", params.get("license_type"), None),
            "categories": parse_id_list(params.get("categories")),
            "show_inactive": _parse_bool(params.get("show_inactive", False)),
            "bookmarked": _parse_bool(params.get("bookmarked", False)),
            "unanswered": _parse_bool(params.get("unanswered", False)),
            "per_page": _parse_int("per_page", params.get("per_page"), DEFAULT_PER_PAGE),
        }
        user.question_filter_preferences = dict(filters)
    else:
        filters = {
            "license_type": saved.get("license_type"),
            "categories": saved.get("categories", []),
            "show_inactive": saved.get("show_inactive", False),
            "bookmarked": saved.get("bookmarked", False),
            "unanswered": saved.get("unanswered", False),
            "per_page": saved.get("per_page", DEFAULT_PER_PAGE),
        }

    filters["per_page"] = max(1, min(int(filters["per_page"]), MAX_PER_PAGE))
    filters["correct_only"] = _parse_bool(params.get("correct_only", False))
    filters["wrong_only"] = _parse_bool(params.get("wrong_only", False))
    filters["session_correct_ids"] = parse_id_list(params.get("session_correct_ids"))
    filters["session_wrong_ids"] = parse_id_list(params.get("session_wrong_ids"))
    return filters


def _session_ids_filter(query: Select, enabled: bool, ids: list[int]) -> Select:
    if not enabled:
        return query
    if not ids:
        return query.where(false())
    return query.where(Question.id.in_(ids))


def browse_questions(
    db: DbSession,
    user: User,
    filters: dict[str, Any],
    page: int = 1,
) -> dict[str, Any]:
    """Filtered, paginated question listing with the user's progress."""
    license_type = None
    if filters["license_type"]:
        license_type = get_license_type(db, filters["license_type"])

    query = select(Question)
    if not filters["show_inactive"]:
        query = query.where(Question.is_active == True)  # noqa: E712
    query = _apply_scope(query, license_type, filters["categories"])
    query = _session_ids_filter(query, filters["correct_only"], filters["session_correct_ids"])
    query = _session_ids_filter(query, filters["wrong_only"], filters["session_wrong_ids"])

    if filters["bookmarked"] or filters["unanswered"]:
        conditions = []
        if filters["bookmarked"]:
            conditions.append(
                Question.id.in_(
                    select(UserQuestionProgress.question_id).where(
                        UserQuestionProgress.user_id == user.id,
                        UserQuestionProgress.is_bookmarked == True,  # noqa: E712
                    )
                )
            )
        if filters["unanswered"]:
            conditions.append(
                Question.id.not_in(
                    select(UserQuestionProgress.question_id).where(
                        UserQuestionProgress.user_id == user.id
                    )
                )
            )
        query = query.where(or_(*conditions))

    total = db.execute(select(func.count()).select_from(query.subquery())).scalar() or 0
    per_page = filters["per_page"]
    page = max(page, 1)
    questions = list(
        db.execute(
            _with_relations(query)
            .order_by(Question.id)
            .limit(per_page)
            .offset((page - 1) * per_page)
        ).scalars().all()
    )

    progress = progress_service.get_progress_map(db, user.id, [q.id for q in questions])

    counts_query = select(Question.question_category_id, func.count(Question.id))
    if not filters["show_inactive"]:
        counts_query = counts_query.where(Question.is_active == True)  # noqa: E712
    counts_query = _apply_scope(counts_query, license_type, None)
    category_counts = dict(
        db.execute(counts_query.group_by(Question.question_category_id)).all()
    )

    answered = db.execute(
        select(func.count(UserQuestionProgress.id)).where(UserQuestionProgress.user_id == user.id)
    ).scalar() or 0

    return {
        "questions": questions,
        "progress": progress,
        "category_counts": category_counts,
        "page": page,
        "per_page": per_page,
        "total": total,
        "stats": {
            "total": count_active_questions(db),
            "answered": answered,
            "filtered": total,
        },
    }


def get_question(db: DbSession, question_id: int) -> Question:
    question = db.execute(
        _with_relations(select(Question)).where(Question.id == question_id)
    ).scalar_one_or_none()
    if question is None:
        raise HTTPException(status_code=404, detail="Question not found")
    return question


def practice_answer(
    db: DbSession, user: User, question_id: int, answer_id: int
) -> dict[str, Any]:
    """Answer a question outside of a test; counts towards mastery."""
    question = get_question(db, question_id)
    answer = next((a for a in question.answers if a.id == answer_id), None)
    if answer is None:
        raise HTTPException(status_code=404, detail="Answer not found")

    progress = progress_service.record_answer(db, user.id, question.id, answer.is_correct)
    db.commit()

    correct = question.correct_answer
    return {
        "is_correct": answer.is_correct,
        "correct_answer_id": correct.id if correct else None,
        "explanation": question.full_description,
        "progress": {
            "times_correct": progress.times_correct,
            "times_wrong": progress.times_wrong,
            "is_bookmarked": progress.is_bookmarked,
        },
    }


def toggle_bookmark(db: DbSession, user: User, question_id: int) -> bool:
    question = db.get(Question, question_id)
    if question is None:
        raise HTTPException(status_code=404, detail="Question not found")
    return progress_service.toggle_bookmark(db, user.id, question.id)
