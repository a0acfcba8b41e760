from decimal import Decimal
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from drivetest.app import app
from drivetest.database import Base, enable_sqlite_foreign_keys, get_db
from drivetest.models.db import (
    Answer,
    LicenseType,
    Question,
    QuestionCategory,
    TestResult,
    TestStatus,
    User,
)
from drivetest.services import auth_service
from drivetest.utils import utc_now

_question_numbers = count(1)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def add_question(
    db,
    category: QuestionCategory,
    license_types: list[LicenseType],
    is_active: bool = True,
    image: str | None = None,
    is_short_image: bool = False,
) -> Question:
    """Question with three answers; the first one is correct."""
    question = Question(
        question_category=category,
        question=f"Question {next(_question_numbers)}",
        full_description="Because the rules say so.",
        is_active=is_active,
        image=image,
        is_short_image=is_short_image,
    )
    question.license_types = list(license_types)
    question.answers = [
        Answer(text="Right", is_correct=True, position=1),
        Answer(text="Wrong", is_correct=False, position=2),
        Answer(text="Also wrong", is_correct=False, position=3),
    ]
    db.add(question)
    return question


@pytest.fixture
def bank(db):
    """
    License B (parent of B1) and C, two categories.
    12 active B questions, 3 active B1 questions, 4 active C questions and
    one inactive B question.
    """
    b = LicenseType(code="B", name="Cars", is_parent=True)
    c = LicenseType(code="C", name="Trucks", is_parent=True)
    db.add_all([b, c])
    db.flush()
    b1 = LicenseType(code="B1", name="Quadricycles", parent_id=b.id, is_parent=False)
    signs = QuestionCategory(name="Road signs")
    priority = QuestionCategory(name="Priority")
    db.add_all([b1, signs, priority])
    db.flush()

    b_questions = [add_question(db, signs if i % 2 else priority, [b]) for i in range(12)]
    b1_questions = [add_question(db, signs, [b1]) for _ in range(3)]
    c_questions = [add_question(db, priority, [c]) for _ in range(4)]
    inactive = add_question(db, signs, [b], is_active=False)
    db.commit()
    db.refresh(b)

    return {
        "b": b,
        "b1": b1,
        "c": c,
        "signs": signs,
        "priority": priority,
        "b_questions": b_questions,
        "b1_questions": b1_questions,
        "c_questions": c_questions,
        "inactive": inactive,
    }


@pytest.fixture
def user(db, bank) -> User:
    return auth_service.create_user(db, "Alice", default_license_type_id=bank["b"].id)


@pytest.fixture
def other_user(db) -> User:
    return auth_service.create_user(db, "Bob")


def auth_headers(db, user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth_service.issue_token(db, user)}"}


@pytest.fixture
def headers(db, user) -> dict[str, str]:
    return auth_headers(db, user)


def make_finished_result(
    db,
    user: User,
    status: TestStatus,
    score: str,
    license_type: LicenseType | None = None,
    finished_at=None,
    correct: int = 0,
    wrong: int = 0,
    total: int = 10,
) -> TestResult:
    finished_at = finished_at or utc_now()
    result = TestResult(
        user_id=user.id,
        test_type="thematic",
        license_type_id=license_type.id if license_type else None,
        status=status.value,
        started_at=finished_at,
        finished_at=finished_at,
        total_questions=total,
        correct_count=correct,
        wrong_count=wrong,
        time_taken_seconds=100,
        score_percentage=Decimal(score),
    )
    result.configuration = {"question_count": total, "time_per_question": 60, "failure_threshold": 10}
    db.add(result)
    db.commit()
    return result
