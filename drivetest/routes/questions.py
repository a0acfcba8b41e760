"""Question browser endpoints."""
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session as DbSession

from drivetest.database import get_db
from drivetest.dependencies.auth import get_current_user
from drivetest.models.db.user import User
from drivetest.models.questions import (
    BookmarkResponse,
    PracticeAnswerRequest,
    PracticeAnswerResponse,
)
from drivetest.serialization import (
    serialize_browser_question,
    serialize_license_type,
    serialize_progress,
)
from drivetest.services import progress_service, question_service

router = APIRouter(prefix="/api/questions", tags=["questions"])


@router.get("")
def browse_questions(
    request: Request,
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    page: int = Query(1, ge=1),
) -> dict[str, Any]:
    """Filtered question listing; explicit filters are saved as preferences."""
    filters = question_service.resolve_browser_filters(current_user, dict(request.query_params))
    db.commit()

    listing = question_service.browse_questions(db, current_user, filters, page)
    progress = listing["progress"]
    total = listing["total"]
    per_page = listing["per_page"]

    return {
        "questions": [serialize_browser_question(q) for q in listing["questions"]],
        "user_progress": {
            str(question_id): serialize_progress(row) for question_id, row in progress.items()
        },
        "category_counts": {
            str(category_id): count for category_id, count in listing["category_counts"].items()
        },
        "filters": {
            key: filters[key]
            for key in (
                "license_type", "categories", "show_inactive", "bookmarked",
                "unanswered", "correct_only", "wrong_only", "per_page",
            )
        },
        "pagination": {
            "page": listing["page"],
            "per_page": per_page,
            "total": total,
            "last_page": max(1, -(-total // per_page)),
        },
        "stats": listing["stats"],
        "license_types": [
            serialize_license_type(lt, with_children=True)
            for lt in question_service.list_parent_license_types(db)
        ],
    }


@router.get("/categories")
def list_categories(db: Annotated[DbSession, Depends(get_db)]) -> list[dict[str, Any]]:
    """Categories with active question counts."""
    return [
        {"id": category.id, "name": category.name, "questions_count": count}
        for category, count in question_service.list_categories_with_counts(db)
    ]


@router.get("/bookmarks/count")
def bookmarks_count(
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, int]:
    return {"count": progress_service.count_bookmarked(db, current_user.id)}


@router.get("/{question_id}")
def get_question(
    question_id: int,
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    question = question_service.get_question(db, question_id)
    progress = progress_service.get_progress(db, current_user.id, question_id)
    return {
        "question": serialize_browser_question(question),
        "progress": serialize_progress(progress) if progress else None,
    }


@router.post("/{question_id}/answer", response_model=PracticeAnswerResponse)
def practice_answer(
    question_id: int,
    data: PracticeAnswerRequest,
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    """Answer a question in the browser."""
    return question_service.practice_answer(db, current_user, question_id, data.answer_id)


@router.post("/{question_id}/bookmark", response_model=BookmarkResponse)
def toggle_bookmark(
    question_id: int,
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> BookmarkResponse:
    is_bookmarked = question_service.toggle_bookmark(db, current_user, question_id)
    return BookmarkResponse(is_bookmarked=is_bookmarked)
