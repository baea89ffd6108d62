"""
Database models for the QuizHub backend.

Users and tests are owned by other services; only the columns the result
subsystem reads are mapped here. Test results keep their polymorphic
answer snapshots, the frozen test snapshot, behaviour events and session
metadata in JSON columns.
"""
from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Enum,
    Index,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum
import uuid

from .base import Base


def generate_id() -> str:
    """Generate a new document identifier."""
    return str(uuid.uuid4())


class UserRole(str, enum.Enum):
    """User role enumeration."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class TestType(str, enum.Enum):
    """Test type enumeration."""

    MULTIPLE_CHOICE = "multiple_choice"
    GRAMMAR = "grammar"
    VOCABULARY = "vocabulary"
    SPELLING = "spelling"
    LISTENING = "listening"


class DifficultyLevel(str, enum.Enum):
    """Difficulty level enumeration."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ResultStatus(str, enum.Enum):
    """Test result status enumeration."""

    DRAFT = "draft"
    ACTIVE = "active"
    DELETED = "deleted"


class User(Base):
    """User profile fields needed for ownership checks and leaderboards."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(100), nullable=False)
    avatar_url = Column(String(500), nullable=True)
    role = Column(Enum(UserRole), default=UserRole.STUDENT, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    test_results = relationship(
        "TestResult", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Test(Base):
    """Test metadata that gets frozen into each result's snapshot."""

    __tablename__ = "tests"

    id = Column(String(36), primary_key=True, default=generate_id)
    test_title = Column(String(255), nullable=False)
    main_topic = Column(String(255), nullable=False)
    sub_topic = Column(String(255), nullable=False, default="")
    test_type = Column(Enum(TestType), nullable=False)
    difficulty = Column(
        Enum(DifficultyLevel), default=DifficultyLevel.MEDIUM, nullable=False
    )
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class TestResult(Base):
    """One user's attempt at one test.

    total_questions, correct_count and percentage are a denormalized cache
    of compute_stats(answers); they are only ever written together with
    answers. There is deliberately no updated_at column: results change by
    status transition or telemetry append only.
    """

    __tablename__ = "test_results"

    id = Column(String(36), primary_key=True, default=generate_id)
    # Kept next to the snapshot for fast lookups by test
    test_id = Column(String(36), nullable=False, index=True)
    test_snapshot = Column(JSON, nullable=False)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    answers = Column(JSON, nullable=False)
    total_questions = Column(Integer, nullable=False)
    correct_count = Column(Integer, nullable=False)
    percentage = Column(Integer, nullable=False)
    duration_ms = Column(Integer, nullable=False, default=0)

    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    device_info = Column(String(500), nullable=True)
    ip_address = Column(String(64), nullable=True)

    status = Column(
        Enum(ResultStatus), default=ResultStatus.DRAFT, nullable=False, index=True
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # Append-only list of {"event_type", "at", "payload"}
    behaviors = Column(JSON, nullable=False, default=list)
    # {"started_at", "user_agent", "ended_at", "duration_ms"}
    session = Column(JSON, nullable=False, default=dict)

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    user = relationship("User", back_populates="test_results")

    __table_args__ = (
        Index(
            "ix_test_results_test_user_status_created",
            "test_id",
            "user_id",
            "status",
            "created_at",
        ),
    )
