"""Service layer for the history of finished tests."""
import logging
from typing import Any

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session as DbSession, selectinload

from drivetest.config import DEFAULT_PER_PAGE, MAX_PER_PAGE
from drivetest.models.db.test_result import FINISHED_STATUSES, TestResult, TestStatus, TestType
from drivetest.models.db.user import User
from drivetest.services.test_session_service import get_owned_result

logger = logging.getLogger(__name__)

FINISHED_VALUES = [status.value for status in FINISHED_STATUSES]


def list_history(
    db: DbSession,
    user: User,
    status: str | None = None,
    test_type: str | None = None,
    page: int = 1,
    per_page: int = DEFAULT_PER_PAGE,
) -> dict[str, Any]:
    """Finished tests of a user, newest first."""
    query = select(TestResult).where(
        TestResult.user_id == user.id,
        TestResult.status.in_(FINISHED_VALUES),
    )
    if status:
        if status not in FINISHED_VALUES:
            raise HTTPException(status_code=422, detail=f"Invalid status filter: {status}")
        query = query.where(TestResult.status == status)
    if test_type:
        if test_type not in {t.value for t in TestType}:
            raise HTTPException(status_code=422, detail=f"Invalid test type filter: {test_type}")
        query = query.where(TestResult.test_type == test_type)

    total = db.execute(select(func.count()).select_from(query.subquery())).scalar() or 0
    per_page = max(1, min(per_page, MAX_PER_PAGE))
    page = max(page, 1)
    items = list(
        db.execute(
            query.options(selectinload(TestResult.license_type))
            .order_by(TestResult.finished_at.desc(), TestResult.id.desc())
            .limit(per_page)
            .offset((page - 1) * per_page)
        ).scalars().all()
    )
    return {
        "items": items,
        "page": page,
        "per_page": per_page,
        "total": total,
        "last_page": max(1, -(-total // per_page)),
    }


def get_history_entry(db: DbSession, user: User, test_id: int) -> TestResult:
    result = get_owned_result(db, user, test_id)
    if not result.is_finished:
        raise HTTPException(
            status_code=409,
            detail={"error": "test_not_finished", "message": "Test is still in progress."},
        )
    return result


def delete_history_entry(db: DbSession, user: User, test_id: int) -> None:
    """Delete a finished test. Active tests must be abandoned first."""
    result = get_owned_result(db, user, test_id)
    if not result.is_finished:
        raise HTTPException(status_code=400, detail="Only finished tests can be deleted")
    db.delete(result)
    db.commit()
    logger.info("Deleted %s test %s", TestStatus(result.status).value, test_id)
