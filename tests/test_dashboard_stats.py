from datetime import timedelta

from conftest import auth_headers, make_finished_result

from drivetest.models.db import TestResult, TestStatus
from drivetest.services import cleanup_service, progress_service, stats_service
from drivetest.utils import utc_now


def test_round_half_up() -> None:
    assert stats_service.round_half_up(2.5) == 3
    assert stats_service.round_half_up(66.5) == 67
    assert stats_service.round_half_up(66.49) == 66


def test_trend_needs_three_tests(db, user, bank) -> None:
    now = utc_now()
    results = [
        make_finished_result(db, user, TestStatus.FAILED, "40.00", bank["b"], now - timedelta(days=2)),
        make_finished_result(db, user, TestStatus.PASSED, "90.00", bank["b"], now - timedelta(days=1)),
    ]
    assert stats_service.calculate_trend(results) == "stable"

    results.append(make_finished_result(db, user, TestStatus.PASSED, "95.00", bank["b"], now))
    assert stats_service.calculate_trend(results) == "improving"

    declining = [
        make_finished_result(db, user, TestStatus.PASSED, "90.00", bank["c"], now - timedelta(days=3)),
        make_finished_result(db, user, TestStatus.FAILED, "60.00", bank["c"], now - timedelta(days=2)),
        make_finished_result(db, user, TestStatus.FAILED, "50.00", bank["c"], now - timedelta(days=1)),
    ]
    assert stats_service.calculate_trend(declining) == "declining"


def test_pass_chance_weights(db, user, bank) -> None:
    now = utc_now()
    results = [
        make_finished_result(db, user, TestStatus.PASSED, "90.00", bank["b"], now - timedelta(days=i))
        for i in range(4)
    ]
    results.append(
        make_finished_result(db, user, TestStatus.FAILED, "50.00", bank["b"], now - timedelta(days=10))
    )
    # recent 5 = all: pass rate 80, overall 80, avg score 82 -> 32 + 24 + 24.6
    assert stats_service.calculate_pass_chance(results) == 81
    assert stats_service.calculate_pass_chance([]) == 0


def test_question_mastery_pass_chance(db, user, bank) -> None:
    questions = bank["c_questions"]
    progress_service.record_answer(db, user.id, questions[0].id, True)
    progress_service.record_answer(db, user.id, questions[0].id, True)
    progress_service.record_answer(db, user.id, questions[1].id, True)
    progress_service.record_answer(db, user.id, questions[2].id, True)
    progress_service.record_answer(db, user.id, questions[2].id, False)
    progress_service.record_answer(db, user.id, questions[3].id, False)
    db.commit()

    chance = stats_service.question_pass_chance(db, user.id, bank["c"])
    # (1 + 0.5 + 0.5 + 0) / 4
    assert chance == {
        "percentage": 50,
        "total_questions": 4,
        "studied_questions": 3,
        "mastered_questions": 1,
    }


def test_dashboard_summary(client, db, headers, user, bank) -> None:
    now = utc_now()
    make_finished_result(db, user, TestStatus.PASSED, "90.00", bank["b"], now, correct=9, wrong=1)
    make_finished_result(db, user, TestStatus.FAILED, "50.00", bank["b"], now - timedelta(days=1), correct=5, wrong=5)
    make_finished_result(db, user, TestStatus.COMPLETED, "30.00", bank["b"], now, correct=3)
    make_finished_result(db, user, TestStatus.PASSED, "100.00", bank["c"], now - timedelta(days=30), correct=10)

    payload = client.get("/api/dashboard", headers=headers).json()

    assert payload["stats"] == {
        "total_tests": 3,
        "passed": 2,
        "failed": 1,
        "pass_rate": 67,
        "total_correct": 24,
        "total_wrong": 6,
    }
    assert payload["progress"]["total"] == 19
    assert payload["active_test"] is None
    performance = {item["license_type"]["code"]: item for item in payload["license_performance"]}
    assert performance["B"]["total_tests"] == 2
    assert performance["B"]["pass_rate"] == 50
    assert performance["B"]["avg_score"] == 70
    assert payload["license_performance"][0]["license_type"]["code"] == "B"
    assert [t["score_percentage"] for t in payload["recent_tests"]] == [100.0, 50.0, 90.0]
    assert sum(day["count"] for day in payload["weekly_activity"]) == 2
    assert payload["default_license_type"]["code"] == "B"
    assert payload["pass_chance"]["total_questions"] == 15


def test_dashboard_reports_active_test(client, headers, bank) -> None:
    client.post("/api/tests/quick", headers=headers)
    payload = client.get("/api/dashboard", headers=headers).json()
    assert payload["active_test"]["status"] == "in_progress"
    assert payload["active_test"]["answered_count"] == 0


def test_history_lists_finished_tests_only(client, db, headers, user, bank) -> None:
    now = utc_now()
    older = make_finished_result(db, user, TestStatus.PASSED, "90.00", bank["b"], now - timedelta(days=1))
    newer = make_finished_result(db, user, TestStatus.ABANDONED, "10.00", bank["b"], now)
    client.post("/api/tests/quick", headers=headers)

    payload = client.get("/api/history", headers=headers).json()
    assert [t["id"] for t in payload["tests"]] == [newer.id, older.id]
    assert payload["pagination"]["total"] == 2

    passed = client.get("/api/history", params={"status": "passed"}, headers=headers).json()
    assert [t["id"] for t in passed["tests"]] == [older.id]
    assert client.get("/api/history", params={"status": "paused"}, headers=headers).status_code == 422

    paged = client.get("/api/history", params={"per_page": 1, "page": 2}, headers=headers).json()
    assert [t["id"] for t in paged["tests"]] == [older.id]
    assert paged["pagination"]["last_page"] == 2


def test_history_show_and_delete(client, db, headers, user, other_user, bank) -> None:
    finished = make_finished_result(db, user, TestStatus.FAILED, "40.00", bank["b"])
    active_id = client.post("/api/tests/quick", headers=headers).json()["test"]["id"]

    shown = client.get(f"/api/history/{finished.id}", headers=headers).json()["test"]
    assert shown["status"] == "failed"
    assert client.get(f"/api/history/{active_id}", headers=headers).status_code == 409
    assert client.delete(f"/api/history/{active_id}", headers=headers).status_code == 400

    other = auth_headers(db, other_user)
    assert client.delete(f"/api/history/{finished.id}", headers=other).status_code == 403

    assert client.delete(f"/api/history/{finished.id}", headers=headers).json() == {"success": True}
    assert db.get(TestResult, finished.id) is None


def test_template_crud(client, db, headers, other_user, bank) -> None:
    payload = {
        "name": "Signs drill",
        "test_type": "thematic",
        "license_type_id": bank["b"].id,
        "question_count": 20,
        "time_per_question": 45,
        "failure_threshold": 15,
        "category_ids": [bank["signs"].id],
        "auto_advance": False,
    }
    created = client.post("/api/templates", json=payload, headers=headers)
    assert created.status_code == 201
    template = created.json()
    assert template["category_ids"] == [bank["signs"].id]
    assert template["license_type"]["code"] == "B"

    updated = client.put(
        f"/api/templates/{template['id']}", json={**payload, "name": "Renamed"}, headers=headers
    ).json()
    assert updated["name"] == "Renamed"
    assert [t["name"] for t in client.get("/api/templates", headers=headers).json()] == ["Renamed"]

    other = auth_headers(db, other_user)
    assert client.delete(f"/api/templates/{template['id']}", headers=other).status_code == 403
    assert client.post("/api/templates", json={**payload, "question_count": 2}, headers=headers).status_code == 422

    assert client.delete(f"/api/templates/{template['id']}", headers=headers).json() == {"success": True}
    assert client.get("/api/templates", headers=headers).json() == []


def test_cleanup_removes_old_abandoned_tests(db, user, bank) -> None:
    now = utc_now()
    old = make_finished_result(db, user, TestStatus.ABANDONED, "0.00", finished_at=now - timedelta(days=200))
    recent = make_finished_result(db, user, TestStatus.ABANDONED, "0.00", finished_at=now - timedelta(days=1))
    kept = make_finished_result(db, user, TestStatus.PASSED, "90.00", finished_at=now - timedelta(days=200))
    ids = (old.id, recent.id, kept.id)

    assert cleanup_service.cleanup_abandoned_tests(db) == 1
    db.expire_all()
    assert db.get(TestResult, ids[0]) is None
    assert db.get(TestResult, ids[1]) is not None
    assert db.get(TestResult, ids[2]) is not None
