"""Service layer for dashboard statistics."""
from collections import defaultdict
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession, selectinload

from drivetest.models.db.question_bank import LicenseType
from drivetest.models.db.test_result import TestResult, TestStatus
from drivetest.models.db.user import User
from drivetest.serialization import serialize_active_summary, serialize_license_type
from drivetest.services import progress_service, question_service
from drivetest.services.test_session_service import get_active_test
from drivetest.utils import utc_now

GRADED_STATUSES = (TestStatus.PASSED.value, TestStatus.FAILED.value)
RECENT_WINDOW = 5
TREND_THRESHOLD = 5
TREND_MIN_TESTS = 3
RECENT_TESTS_LIMIT = 10
ACTIVITY_DAYS = 7


def round_half_up(value: float | Decimal) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _avg(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _score(result: TestResult) -> float:
    return float(result.score_percentage or 0)


def calculate_trend(results: list[TestResult]) -> str:
    """
    Compare the average score of the later half of the tests with the
    earlier half. Fewer than three tests are always stable.
    """
    if len(results) < TREND_MIN_TESTS:
        return "stable"
    ordered = sorted(results, key=lambda r: r.finished_at_utc)
    half = len(ordered) // 2
    diff = _avg([_score(r) for r in ordered[half:]]) - _avg([_score(r) for r in ordered[:half]])
    if diff > TREND_THRESHOLD:
        return "improving"
    if diff < -TREND_THRESHOLD:
        return "declining"
    return "stable"


def calculate_pass_chance(results: list[TestResult]) -> int:
    """
    Weighted pass chance for one license type:
    40% recent pass rate, 30% overall pass rate, 30% recent average score.
    """
    if not results:
        return 0
    recent = sorted(results, key=lambda r: r.finished_at_utc, reverse=True)[:RECENT_WINDOW]
    recent_pass_rate = sum(1 for r in recent if r.is_passed) / len(recent) * 100
    overall_pass_rate = sum(1 for r in results if r.is_passed) / len(results) * 100
    recent_avg_score = _avg([_score(r) for r in recent])
    chance = round_half_up(
        recent_pass_rate * 0.4 + overall_pass_rate * 0.3 + recent_avg_score * 0.3
    )
    return max(0, min(100, chance))


def license_performance(results: Iterable[TestResult]) -> list[dict[str, Any]]:
    """Per license type performance, most practiced first."""
    grouped: dict[int, list[TestResult]] = defaultdict(list)
    for result in results:
        if result.license_type_id is not None and result.license_type is not None:
            grouped[result.license_type_id].append(result)

    performance = []
    for tests in grouped.values():
        total = len(tests)
        passed = sum(1 for r in tests if r.is_passed)
        performance.append({
            "license_type": serialize_license_type(tests[0].license_type),
            "total_tests": total,
            "passed": passed,
            "failed": total - passed,
            "pass_rate": round_half_up(passed / total * 100),
            "avg_score": round_half_up(_avg([_score(r) for r in tests])),
            "pass_chance": calculate_pass_chance(tests),
            "trend": calculate_trend(tests),
        })
    performance.sort(key=lambda item: item["total_tests"], reverse=True)
    return performance


def question_pass_chance(db: DbSession, user_id: int, license_type: LicenseType) -> dict[str, int]:
    """Pass chance from per-question mastery over the license's question pool."""
    question_ids = question_service.active_question_ids(db, license_type)
    if not question_ids:
        return {
            "percentage": 0,
            "total_questions": 0,
            "studied_questions": 0,
            "mastered_questions": 0,
        }

    progress = progress_service.get_progress_map(db, user_id, question_ids)
    total_score = 0.0
    studied = 0
    mastered = 0
    for question_id in question_ids:
        row = progress.get(question_id)
        if row is None:
            continue
        score = row.mastery_score
        if row.times_correct > 0:
            studied += 1
            if score >= 1:
                mastered += 1
        total_score += score

    return {
        "percentage": round_half_up(total_score / len(question_ids) * 100),
        "total_questions": len(question_ids),
        "studied_questions": studied,
        "mastered_questions": mastered,
    }


def weekly_activity(results: Iterable[TestResult], now=None) -> list[dict[str, Any]]:
    """Graded tests per day over the last seven days."""
    cutoff = (now or utc_now()) - timedelta(days=ACTIVITY_DAYS)
    days: dict[str, dict[str, int]] = {}
    for result in results:
        finished = result.finished_at_utc
        if finished is None or finished < cutoff:
            continue
        day = days.setdefault(finished.date().isoformat(), {"count": 0, "passed": 0})
        day["count"] += 1
        if result.is_passed:
            day["passed"] += 1
    return [{"date": date, **counts} for date, counts in sorted(days.items())]


def get_dashboard(db: DbSession, user: User) -> dict[str, Any]:
    graded = list(
        db.execute(
            select(TestResult)
            .options(selectinload(TestResult.license_type))
            .where(TestResult.user_id == user.id, TestResult.status.in_(GRADED_STATUSES))
        ).scalars().all()
    )
    total = len(graded)
    passed = sum(1 for r in graded if r.is_passed)

    total_questions = question_service.count_active_questions(db)
    studied = progress_service.count_studied(db, user.id)

    active = get_active_test(db, user.id)

    recent = sorted(graded, key=lambda r: r.finished_at_utc, reverse=True)[:RECENT_TESTS_LIMIT]
    recent.reverse()

    default_license_type = None
    if user.default_license_type_id:
        default_license_type = question_service.get_license_type(db, user.default_license_type_id)

    return {
        "stats": {
            "total_tests": total,
            "passed": passed,
            "failed": total - passed,
            "pass_rate": round_half_up(passed / total * 100) if total else 0,
            "total_correct": sum(r.correct_count for r in graded),
            "total_wrong": sum(r.wrong_count for r in graded),
        },
        "progress": {
            "studied": studied,
            "total": total_questions,
            "percentage": round_half_up(studied / total_questions * 100) if total_questions else 0,
            "bookmarked": progress_service.count_bookmarked(db, user.id),
        },
        "active_test": serialize_active_summary(active) if active else None,
        "license_performance": license_performance(graded),
        "recent_tests": [
            {
                "id": r.id,
                "status": r.status,
                "score_percentage": _score(r),
                "finished_at": r.finished_at_utc.isoformat(),
                "license_type_id": r.license_type_id,
            }
            for r in recent
        ],
        "weekly_activity": weekly_activity(graded),
        "default_license_type": serialize_license_type(default_license_type),
        "license_types": [
            serialize_license_type(lt, with_children=True)
            for lt in question_service.list_parent_license_types(db)
        ],
        "pass_chance": (
            question_pass_chance(db, user.id, default_license_type)
            if default_license_type
            else None
        ),
    }
