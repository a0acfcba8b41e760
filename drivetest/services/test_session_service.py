"""Service layer for the test session lifecycle."""
import logging
import random
from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession

from drivetest.config import (
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_QUESTION_COUNT,
    DEFAULT_TIME_PER_QUESTION,
)
from drivetest.models.db.question_bank import Question
from drivetest.models.db.test_result import (
    ACTIVE_STATUSES,
    TestResult,
    TestStatus,
    TestType,
)
from drivetest.models.db.user import User
from drivetest.models.tests import TestStartRequest
from drivetest.serialization import serialize_active_summary, serialize_paper_question
from drivetest.services import progress_service, question_service, template_service
from drivetest.utils import utc_now, utc_now_iso

logger = logging.getLogger(__name__)

ALREADY_FINISHED = "Test already completed"


def get_owned_result(db: DbSession, user: User, test_id: int) -> TestResult:
    """Load a test session, enforcing ownership."""
    result = db.get(TestResult, test_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Test not found")
    if result.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not allowed to access this test")
    return result


def get_active_test(db: DbSession, user_id: int) -> TestResult | None:
    """Most recent in-progress or paused test of a user."""
    return db.execute(
        select(TestResult)
        .where(
            TestResult.user_id == user_id,
            TestResult.status.in_([status.value for status in ACTIVE_STATUSES]),
        )
        .order_by(TestResult.started_at.desc(), TestResult.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def check_active_conflict(db: DbSession, user: User, abandon_active: bool) -> TestResult | None:
    """
    Enforce the one-active-test rule.

    Returns the active test that must be abandoned before starting a new one,
    or None when there is nothing to replace.

    Raises:
        HTTPException: 409 when an active test exists and abandon_active is false
    """
    active = get_active_test(db, user.id)
    if active is None:
        return None
    if not abandon_active:
        raise HTTPException(
            status_code=409,
            detail={
                "error": "active_test_exists",
                "message": "You have an active test. Abandon it to start a new one.",
                "active_test": serialize_active_summary(active),
            },
        )
    return active


def build_paper(questions: list[Question]) -> list[dict[str, Any]]:
    return [serialize_paper_question(question) for question in questions]


def _create_session(
    db: DbSession,
    user: User,
    test_type: str,
    license_type_id: int | None,
    configuration: dict[str, Any],
    paper: list[dict[str, Any]],
    replaces: TestResult | None = None,
    test_template_id: int | None = None,
    now: datetime | None = None,
) -> TestResult:
    now = now or utc_now()
    if replaces is not None and replaces.abandon(now):
        logger.info("Abandoned test %s of user %s for a new test", replaces.id, user.id)

    time_per_question = configuration.get("time_per_question", DEFAULT_TIME_PER_QUESTION)
    result = TestResult(
        user_id=user.id,
        test_template_id=test_template_id,
        test_type=test_type,
        license_type_id=license_type_id,
        status=TestStatus.IN_PROGRESS.value,
        started_at=now,
        current_question_index=0,
        correct_count=0,
        wrong_count=0,
        total_questions=len(paper),
        score_percentage=Decimal("0.00"),
        remaining_time_seconds=configuration.get("question_count", len(paper)) * time_per_question,
    )
    result.configuration = configuration
    result.questions_with_answers = paper
    result.answers_given = {}
    result.skipped_question_ids = []

    db.add(result)
    db.commit()
    db.refresh(result)
    logger.info(
        "Started %s test %s for user %s with %s questions",
        test_type, result.id, user.id, result.total_questions,
    )
    return result


def _start(
    db: DbSession,
    user: User,
    config: dict[str, Any],
    abandon_active: bool = False,
    test_template_id: int | None = None,
) -> TestResult:
    test_type = TestType(config["test_type"]).value
    license_type = question_service.require_license_type(db, config.get("license_type_id"))
    category_ids = list(config.get("category_ids") or [])
    question_service.require_categories(db, category_ids)
    if test_template_id is not None:
        template_service.get_owned_template(db, user, test_template_id)

    replaces = check_active_conflict(db, user, abandon_active)

    questions = question_service.select_test_questions(
        db,
        user.id,
        test_type,
        config["question_count"],
        license_type=license_type,
        category_ids=category_ids,
    )
    if not questions:
        raise HTTPException(status_code=422, detail="No questions found matching your criteria.")

    auto_advance = config.get("auto_advance")
    if auto_advance is not None:
        user.test_auto_advance = auto_advance
    else:
        auto_advance = user.test_auto_advance

    configuration = {
        "question_count": len(questions),
        "time_per_question": config["time_per_question"],
        "failure_threshold": config["failure_threshold"],
        "category_ids": category_ids,
        "auto_advance": auto_advance,
        "shuffle_seed": random.random(),
    }
    return _create_session(
        db,
        user,
        test_type,
        license_type.id if license_type else None,
        configuration,
        build_paper(questions),
        replaces=replaces,
        test_template_id=test_template_id,
    )


def start_test(db: DbSession, user: User, request: TestStartRequest) -> TestResult:
    """Start a test from a validated configuration."""
    config = request.model_dump(exclude={"abandon_active", "test_template_id"})
    return _start(db, user, config, request.abandon_active, request.test_template_id)


def quick_start(db: DbSession, user: User, abandon_active: bool = False) -> TestResult:
    """Thematic test with default settings for the user's license type."""
    config = {
        "test_type": TestType.THEMATIC.value,
        "license_type_id": user.default_license_type_id,
        "question_count": DEFAULT_QUESTION_COUNT,
        "time_per_question": DEFAULT_TIME_PER_QUESTION,
        "failure_threshold": DEFAULT_FAILURE_THRESHOLD,
        "category_ids": [],
        "auto_advance": user.test_auto_advance,
    }
    return _start(db, user, config, abandon_active)


def start_from_template(
    db: DbSession, user: User, template_id: int, abandon_active: bool = False
) -> TestResult:
    template = template_service.get_owned_template(db, user, template_id)
    return _start(db, user, template.to_configuration(), abandon_active, template.id)


def redo_same(db: DbSession, user: User, test_id: int, abandon_active: bool = False) -> TestResult:
    """New session over the identical paper and configuration."""
    source = get_owned_result(db, user, test_id)
    replaces = check_active_conflict(db, user, abandon_active)
    paper = source.questions_with_answers
    configuration = dict(source.configuration)
    configuration.setdefault("question_count", len(paper))
    return _create_session(
        db,
        user,
        source.test_type,
        source.license_type_id,
        configuration,
        paper,
        replaces=replaces,
        test_template_id=source.test_template_id,
    )


def new_similar(db: DbSession, user: User, test_id: int, abandon_active: bool = False) -> TestResult:
    """New session with the same configuration and freshly drawn questions."""
    source = get_owned_result(db, user, test_id)
    stored = source.configuration
    config = {
        "test_type": source.test_type,
        "license_type_id": source.license_type_id,
        "question_count": stored.get("question_count", DEFAULT_QUESTION_COUNT),
        "time_per_question": stored.get("time_per_question", DEFAULT_TIME_PER_QUESTION),
        "failure_threshold": stored.get("failure_threshold", DEFAULT_FAILURE_THRESHOLD),
        "category_ids": stored.get("category_ids", []),
        "auto_advance": bool(stored.get("auto_advance", True)),
    }
    return _start(db, user, config, abandon_active, source.test_template_id)


def show(db: DbSession, user: User, test_id: int) -> TestResult:
    """Load a test for taking, resuming it if paused."""
    result = get_owned_result(db, user, test_id)
    if result.resume():
        db.commit()
        db.refresh(result)
        logger.info("Resumed test %s", result.id)
    return result


def resume(db: DbSession, user: User, test_id: int) -> TestResult:
    result = get_owned_result(db, user, test_id)
    if result.is_finished:
        raise HTTPException(status_code=400, detail=ALREADY_FINISHED)
    if result.resume():
        db.commit()
        db.refresh(result)
    return result


def _find_paper_question(result: TestResult, question_id: int) -> dict[str, Any] | None:
    return next(
        (item for item in result.questions_with_answers if item.get("id") == question_id),
        None,
    )


def answer(
    db: DbSession,
    user: User,
    test_id: int,
    question_id: int,
    answer_id: int,
    remaining_time: int,
) -> dict[str, Any]:
    """
    Record an answer, update mastery and apply the mistake threshold.
    The answer that exceeds the allowance, or the last missing answer,
    finalizes the test.
    """
    result = get_owned_result(db, user, test_id)
    if result.is_finished:
        raise HTTPException(status_code=400, detail=ALREADY_FINISHED)

    answers_given = result.answers_given
    if str(question_id) in answers_given:
        raise HTTPException(status_code=400, detail="Question already answered")

    question = _find_paper_question(result, question_id)
    if question is None:
        raise HTTPException(status_code=404, detail="Question not found")
    selected = next((a for a in question.get("answers", []) if a.get("id") == answer_id), None)
    if selected is None:
        raise HTTPException(status_code=404, detail="Answer not found")

    # Answers arriving for a paused test continue it
    result.resume()

    is_correct = bool(selected.get("is_correct"))
    answers_given[str(question_id)] = {
        "answer_id": answer_id,
        "is_correct": is_correct,
        "answered_at": utc_now_iso(),
    }
    result.answers_given = answers_given
    result.skipped_question_ids = [
        skipped for skipped in result.skipped_question_ids if skipped != question_id
    ]
    if is_correct:
        result.correct_count += 1
    else:
        result.wrong_count += 1
    result.remaining_time_seconds = remaining_time

    progress_service.record_answer(db, user.id, question_id, is_correct)

    has_exceeded = result.has_exceeded_mistakes
    if has_exceeded or result.unanswered_count == 0:
        result.finish(remaining_time)
        logger.info("Test %s finished after answer with status %s", result.id, result.status)

    db.commit()
    db.refresh(result)

    correct = next((a for a in question.get("answers", []) if a.get("is_correct")), None)
    return {
        "is_correct": is_correct,
        "correct_answer_id": correct["id"] if correct else None,
        "correct_count": result.correct_count,
        "wrong_count": result.wrong_count,
        "has_exceeded_mistakes": has_exceeded,
        "allowed_wrong": result.allowed_wrong,
        "status": result.status,
    }


def skip(db: DbSession, user: User, test_id: int, question_id: int) -> list[int]:
    """Mark a question as skipped. Skipping twice is a no-op."""
    result = get_owned_result(db, user, test_id)
    if result.is_finished:
        raise HTTPException(status_code=400, detail=ALREADY_FINISHED)
    if str(question_id) in result.answers_given:
        raise HTTPException(status_code=400, detail="Question already answered")

    skipped = result.skipped_question_ids
    if question_id not in skipped:
        skipped.append(question_id)
        result.skipped_question_ids = skipped
        db.commit()
    return skipped


def pause(
    db: DbSession,
    user: User,
    test_id: int,
    current_question_index: int,
    remaining_time: int,
) -> TestResult:
    result = get_owned_result(db, user, test_id)
    if result.is_finished:
        raise HTTPException(status_code=400, detail=ALREADY_FINISHED)
    if not result.pause(remaining_time, current_question_index):
        raise HTTPException(status_code=400, detail="Test is already paused")
    db.commit()
    db.refresh(result)
    logger.info("Paused test %s with %ss remaining", result.id, remaining_time)
    return result


def complete(
    db: DbSession, user: User, test_id: int, remaining_time: int | None = None
) -> TestResult:
    """Finalize a test. Completing a finished test returns it unchanged."""
    result = get_owned_result(db, user, test_id)
    if result.is_finished:
        return result

    result.resume()
    if remaining_time is None:
        remaining_time = result.remaining_time_seconds
    result.finish(remaining_time)
    db.commit()
    db.refresh(result)
    logger.info("Completed test %s with status %s", result.id, result.status)
    return result


def abandon(db: DbSession, user: User, test_id: int) -> bool:
    """Abandon an active test. Returns False if the test was not active."""
    result = get_owned_result(db, user, test_id)
    if not result.abandon():
        return False
    db.commit()
    logger.info("Abandoned test %s", result.id)
    return True


def results(db: DbSession, user: User, test_id: int) -> TestResult:
    result = get_owned_result(db, user, test_id)
    if not result.is_finished:
        raise HTTPException(
            status_code=409,
            detail={"error": "test_not_finished", "message": "Test is still in progress."},
        )
    return result
