"""Test history endpoints."""
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session as DbSession

from drivetest.config import DEFAULT_PER_PAGE, MAX_PER_PAGE
from drivetest.database import get_db
from drivetest.dependencies.auth import get_current_user
from drivetest.models.db.user import User
from drivetest.serialization import serialize_result
from drivetest.services import history_service

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("")
def list_history(
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    status: str | None = None,
    test_type: str | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE),
) -> dict[str, Any]:
    """Finished tests, newest first."""
    listing = history_service.list_history(
        db, current_user, status=status, test_type=test_type, page=page, per_page=per_page
    )
    return {
        "tests": [serialize_result(r, include_paper=False) for r in listing["items"]],
        "pagination": {
            "page": listing["page"],
            "per_page": listing["per_page"],
            "total": listing["total"],
            "last_page": listing["last_page"],
        },
        "filters": {"status": status, "test_type": test_type},
    }


@router.get("/{test_id}")
def get_history_entry(
    test_id: int,
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, Any]:
    return {"test": serialize_result(history_service.get_history_entry(db, current_user, test_id))}


@router.delete("/{test_id}")
def delete_history_entry(
    test_id: int,
    db: Annotated[DbSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, bool]:
    history_service.delete_history_entry(db, current_user, test_id)
    return {"success": True}
