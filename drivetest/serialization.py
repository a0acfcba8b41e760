"""JSON payload builders for API responses and the stored test paper."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from drivetest.models.db.progress import UserQuestionProgress
from drivetest.models.db.question_bank import LicenseType, Question
from drivetest.models.db.test_result import TestResult
from drivetest.models.db.test_template import TestTemplate
from drivetest.utils import ensure_utc


def _iso(value: datetime | None) -> str | None:
    value = ensure_utc(value)
    return value.isoformat() if value else None


def serialize_license_type(license_type: LicenseType | None, with_children: bool = False) -> dict[str, Any] | None:
    if license_type is None:
        return None
    payload: dict[str, Any] = {
        "id": license_type.id,
        "code": license_type.code,
        "name": license_type.name,
    }
    if with_children:
        payload["is_parent"] = license_type.is_parent
        payload["display_name"] = license_type.display_name
        payload["children"] = [
            {"id": child.id, "code": child.code, "name": child.name}
            for child in license_type.children
        ]
    return payload


def serialize_paper_question(question: Question) -> dict[str, Any]:
    """Snapshot of a question as stored on a test paper."""
    return {
        "id": question.id,
        "question": question.question,
        "description": question.description,
        "full_description": question.full_description,
        "image": question.image,
        "image_custom": question.image_custom,
        "is_short_image": question.is_short_image,
        "question_category": {
            "id": question.question_category.id,
            "name": question.question_category.name,
        },
        "answers": [
            {
                "id": answer.id,
                "text": answer.text,
                "is_correct": answer.is_correct,
                "position": answer.position,
            }
            for answer in question.answers
        ],
        "signs": [
            {
                "id": sign.id,
                "image": sign.image,
                "title": sign.title,
                "description": sign.description,
            }
            for sign in question.signs
        ],
    }


def serialize_browser_question(question: Question) -> dict[str, Any]:
    payload = serialize_paper_question(question)
    payload["is_active"] = question.is_active
    payload["has_small_answers"] = question.has_small_answers
    payload["license_types"] = [
        {"id": lt.id, "code": lt.code} for lt in question.license_types
    ]
    return payload


def serialize_progress(progress: UserQuestionProgress) -> dict[str, Any]:
    return {
        "times_correct": progress.times_correct,
        "times_wrong": progress.times_wrong,
        "is_bookmarked": progress.is_bookmarked,
        "last_answered_at": _iso(progress.last_answered_at),
    }


def serialize_template(template: TestTemplate) -> dict[str, Any]:
    return {
        "id": template.id,
        "name": template.name,
        "test_type": template.test_type,
        "license_type_id": template.license_type_id,
        "license_type": serialize_license_type(template.license_type),
        "question_count": template.question_count,
        "time_per_question": template.time_per_question,
        "failure_threshold": template.failure_threshold,
        "category_ids": template.category_ids,
        "auto_advance": template.auto_advance,
        "created_at": _iso(template.created_at),
    }


def serialize_active_summary(result: TestResult) -> dict[str, Any]:
    """Short description of an active test (dashboard, conflict responses)."""
    return {
        "id": result.id,
        "test_type": result.test_type,
        "status": result.status,
        "total_questions": result.total_questions,
        "answered_count": result.answered_count,
        "correct_count": result.correct_count,
        "wrong_count": result.wrong_count,
        "remaining_time_seconds": result.remaining_time_seconds,
        "progress_percentage": result.progress_percentage,
        "started_at": _iso(result.started_at),
        "license_type": serialize_license_type(result.license_type),
    }


def serialize_for_taking(result: TestResult, now: datetime | None = None) -> dict[str, Any]:
    """Everything the client needs to render or resume an active test."""
    time_remaining = result.time_remaining_at(now) if now else result.time_remaining
    return {
        "id": result.id,
        "test_type": result.test_type,
        "status": result.status,
        "configuration": result.configuration,
        "questions": result.questions_with_answers,
        "current_question_index": result.current_question_index,
        "answers_given": result.answers_given,
        "skipped_question_ids": result.skipped_question_ids,
        "correct_count": result.correct_count,
        "wrong_count": result.wrong_count,
        "total_questions": result.total_questions,
        "remaining_time_seconds": result.remaining_time_seconds,
        "time_remaining": time_remaining,
        "progress_percentage": result.progress_percentage,
        "allowed_wrong": result.allowed_wrong,
        "started_at": _iso(result.started_at),
        "test_template_id": result.test_template_id,
    }


def serialize_result(result: TestResult, include_paper: bool = True) -> dict[str, Any]:
    """Finished test with its outcome."""
    payload = {
        "id": result.id,
        "test_type": result.test_type,
        "status": result.status,
        "configuration": result.configuration,
        "correct_count": result.correct_count,
        "wrong_count": result.wrong_count,
        "total_questions": result.total_questions,
        "answered_count": result.answered_count,
        "skipped_count": result.skipped_count,
        "score_percentage": float(result.score_percentage or 0),
        "time_taken_seconds": result.time_taken_seconds,
        "is_overtime": result.is_overtime,
        "allowed_wrong": result.allowed_wrong,
        "started_at": _iso(result.started_at),
        "finished_at": _iso(result.finished_at),
        "license_type_id": result.license_type_id,
        "license_type": serialize_license_type(result.license_type),
        "test_template_id": result.test_template_id,
    }
    if include_paper:
        payload["questions"] = result.questions_with_answers
        payload["answers_given"] = result.answers_given
        payload["skipped_question_ids"] = result.skipped_question_ids
    return payload
