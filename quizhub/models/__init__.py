"""
Models package for the QuizHub backend.
"""
from .base import Base, engine, SessionLocal, get_db
from .models import (
    User,
    Test,
    TestResult,
    UserRole,
    TestType,
    DifficultyLevel,
    ResultStatus,
    generate_id,
)

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "User",
    "Test",
    "TestResult",
    "UserRole",
    "TestType",
    "DifficultyLevel",
    "ResultStatus",
    "generate_id",
]
