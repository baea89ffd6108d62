"""
Pytest configuration and shared fixtures for testing.
"""
import os
from pathlib import Path

# Settings and the engine are built at import time, so the environment must
# be in place before anything from quizhub is imported.
_TEST_DB = Path(__file__).parent / "test.db"
SQLALCHEMY_DATABASE_URL = f"sqlite:///{_TEST_DB}"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-quizhub-tests")
os.environ["DATABASE_URL"] = SQLALCHEMY_DATABASE_URL
os.environ.setdefault("DEBUG", "False")
os.environ.setdefault("DB_CREATE_TABLES", "False")

from contextlib import asynccontextmanager  # noqa: E402
from datetime import timedelta  # noqa: E402
from typing import Dict, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from quizhub.core.datetime_utils import utc_now  # noqa: E402
from quizhub.core.security import create_access_token  # noqa: E402
from quizhub.main import app  # noqa: E402
from quizhub.models import Base, User, UserRole, get_db  # noqa: E402
from quizhub.models import models  # noqa: E402
from tests.factories import mc_answer  # noqa: E402


@asynccontextmanager
async def _test_lifespan(app):
    """No-op lifespan; tables are managed by the db_session fixture."""
    yield


app.router.lifespan_context = _test_lifespan

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Test client whose get_db yields sessions on the test database.
    """

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_user(db, email: str, full_name: str, role: UserRole) -> User:
    user = User(email=email, full_name=full_name, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def student(db_session):
    return _create_user(db_session, "student@example.com", "Sam Student", UserRole.STUDENT)


@pytest.fixture
def other_student(db_session):
    return _create_user(db_session, "other@example.com", "Olive Other", UserRole.STUDENT)


@pytest.fixture
def admin(db_session):
    return _create_user(db_session, "admin@example.com", "Ada Admin", UserRole.ADMIN)


@pytest.fixture
def quiz(db_session):
    """A multiple-choice test to submit results against."""
    test = models.Test(
        test_title="Present Perfect Basics",
        main_topic="Grammar",
        sub_topic="Tenses",
        test_type=models.TestType.MULTIPLE_CHOICE,
        difficulty=models.DifficultyLevel.EASY,
    )
    db_session.add(test)
    db_session.commit()
    db_session.refresh(test)
    return test


def _headers(user: User) -> Dict[str, str]:
    token = create_access_token({"user_id": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student_headers(student):
    return _headers(student)


@pytest.fixture
def other_headers(other_student):
    return _headers(other_student)


@pytest.fixture
def admin_headers(admin):
    return _headers(admin)


@pytest.fixture
def make_result(db_session, quiz):
    """
    Factory that inserts a result row directly, bypassing the service.

    Statistics are taken from the arguments, so leaderboard tests can shape
    rows freely.
    """

    def _make(
        user: User,
        *,
        status: "models.ResultStatus" = models.ResultStatus.ACTIVE,
        total_questions: int = 5,
        correct_count: int = 4,
        percentage: Optional[int] = None,
        duration_ms: int = 60_000,
        created_at=None,
        test_type: str = "multiple_choice",
        difficulty: str = "easy",
    ):
        if percentage is None:
            percentage = round(correct_count * 100 / total_questions) if total_questions else 0
        result = models.TestResult(
            test_id=quiz.id,
            test_snapshot={
                "test_id": quiz.id,
                "test_title": quiz.test_title,
                "main_topic": quiz.main_topic,
                "sub_topic": quiz.sub_topic,
                "test_type": test_type,
                "difficulty": difficulty,
            },
            user_id=user.id,
            answers=[mc_answer() for _ in range(total_questions)],
            total_questions=total_questions,
            correct_count=correct_count,
            percentage=percentage,
            duration_ms=duration_ms,
            status=status,
            created_at=created_at or utc_now() - timedelta(hours=1),
        )
        db_session.add(result)
        db_session.commit()
        db_session.refresh(result)
        return result

    return _make
