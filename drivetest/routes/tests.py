"""Test session endpoints."""
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session as DbSession

from drivetest.database import get_db
from drivetest.dependencies.auth import get_current_user
from drivetest.models.db.user import User
from drivetest.models.tests import (
    AnswerRequest,
    AnswerResponse,
    CompleteRequest,
    PauseRequest,
    ReplaceActiveRequest,
    SkipRequest,
    TestStartRequest,
)
from drivetest.serialization import (
    serialize_active_summary,
    serialize_for_taking,
    serialize_result,
)
from drivetest.services import test_session_service

router = APIRouter(prefix="/api/tests", tags=["tests"])

CurrentUser = Annotated[User, Depends(get_current_user)]
Database = Annotated[DbSession, Depends(get_db)]


def _abandon_active(data: ReplaceActiveRequest | None) -> bool:
    return data.abandon_active if data is not None else False


def _started(result, user: User) -> dict[str, Any]:
    return {
        "test": serialize_for_taking(result),
        "user_settings": {"auto_advance": user.test_auto_advance},
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def start_test(data: TestStartRequest, db: Database, current_user: CurrentUser) -> dict[str, Any]:
    """Start a test. Returns 409 while another test is active."""
    result = test_session_service.start_test(db, current_user, data)
    return _started(result, current_user)


@router.post("/quick", status_code=status.HTTP_201_CREATED)
def quick_start(
    db: Database,
    current_user: CurrentUser,
    data: ReplaceActiveRequest | None = None,
) -> dict[str, Any]:
    """Start a thematic test with default settings."""
    result = test_session_service.quick_start(db, current_user, _abandon_active(data))
    return _started(result, current_user)


@router.post("/from-template/{template_id}", status_code=status.HTTP_201_CREATED)
def start_from_template(
    template_id: int,
    db: Database,
    current_user: CurrentUser,
    data: ReplaceActiveRequest | None = None,
) -> dict[str, Any]:
    result = test_session_service.start_from_template(
        db, current_user, template_id, _abandon_active(data)
    )
    return _started(result, current_user)


@router.get("/active")
def get_active_test(db: Database, current_user: CurrentUser) -> dict[str, Any]:
    active = test_session_service.get_active_test(db, current_user.id)
    return {"active_test": serialize_active_summary(active) if active else None}


@router.get("/{test_id}")
def show_test(test_id: int, db: Database, current_user: CurrentUser) -> dict[str, Any]:
    """Test for taking; a paused test is resumed."""
    result = test_session_service.show(db, current_user, test_id)
    if result.is_finished:
        return {
            "finished": True,
            "status": result.status,
            "results_url": f"/api/tests/{result.id}/results",
        }
    return {"finished": False, **_started(result, current_user)}


@router.post("/{test_id}/resume")
def resume_test(test_id: int, db: Database, current_user: CurrentUser) -> dict[str, Any]:
    result = test_session_service.resume(db, current_user, test_id)
    return _started(result, current_user)


@router.post("/{test_id}/answer", response_model=AnswerResponse)
def answer_question(
    test_id: int, data: AnswerRequest, db: Database, current_user: CurrentUser
) -> dict[str, Any]:
    return test_session_service.answer(
        db, current_user, test_id, data.question_id, data.answer_id, data.remaining_time
    )


@router.post("/{test_id}/skip")
def skip_question(
    test_id: int, data: SkipRequest, db: Database, current_user: CurrentUser
) -> dict[str, Any]:
    skipped = test_session_service.skip(db, current_user, test_id, data.question_id)
    return {"success": True, "skipped_ids": skipped}


@router.post("/{test_id}/pause")
def pause_test(
    test_id: int, data: PauseRequest, db: Database, current_user: CurrentUser
) -> dict[str, Any]:
    test_session_service.pause(
        db, current_user, test_id, data.current_question_index, data.remaining_time
    )
    return {"success": True}


@router.post("/{test_id}/complete")
def complete_test(
    test_id: int,
    db: Database,
    current_user: CurrentUser,
    data: CompleteRequest | None = None,
) -> dict[str, Any]:
    remaining_time = data.remaining_time if data is not None else None
    result = test_session_service.complete(db, current_user, test_id, remaining_time)
    return {
        "success": True,
        "status": result.status,
        "passed": result.is_passed,
        "results_url": f"/api/tests/{result.id}/results",
    }


@router.post("/{test_id}/abandon")
def abandon_test(test_id: int, db: Database, current_user: CurrentUser) -> dict[str, bool]:
    return {"success": test_session_service.abandon(db, current_user, test_id)}


@router.get("/{test_id}/results")
def get_results(test_id: int, db: Database, current_user: CurrentUser) -> dict[str, Any]:
    result = test_session_service.results(db, current_user, test_id)
    return {"test": serialize_result(result)}


@router.post("/{test_id}/redo", status_code=status.HTTP_201_CREATED)
def redo_test(
    test_id: int,
    db: Database,
    current_user: CurrentUser,
    data: ReplaceActiveRequest | None = None,
) -> dict[str, Any]:
    """Retake the same questions in the same order."""
    result = test_session_service.redo_same(db, current_user, test_id, _abandon_active(data))
    return _started(result, current_user)


@router.post("/{test_id}/similar", status_code=status.HTTP_201_CREATED)
def new_similar_test(
    test_id: int,
    db: Database,
    current_user: CurrentUser,
    data: ReplaceActiveRequest | None = None,
) -> dict[str, Any]:
    """Same settings, new random questions."""
    result = test_session_service.new_similar(db, current_user, test_id, _abandon_active(data))
    return _started(result, current_user)
