"""
Aggregation queries that rank users by their test results.

Each query groups results by user in the database and joins the user
profile so the leaderboard rows carry name, email and avatar without a
second round trip.
"""
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from quizhub.core.leaderboard import (
    COMPOSITE_SCORE_MULTIPLIER,
    MIN_QUESTIONS_PER_PERFORMER_RESULT,
    MIN_RESULTS_PER_PERFORMER,
)
from quizhub.db.result_store import qualifying_result_filter
from quizhub.models.models import ResultStatus, TestResult, User

_total_tests = func.count(TestResult.id).label("total_tests")
_average_percentage = func.avg(TestResult.percentage).label("average_percentage")
_composite_score = func.sum(
    TestResult.percentage * TestResult.correct_count * COMPOSITE_SCORE_MULTIPLIER
).label("composite_score")


def _aggregate_by_user(db: Session) -> Query:
    """Per-user aggregate columns joined with the user's profile."""
    return (
        db.query(
            TestResult.user_id.label("user_id"),
            User.full_name.label("full_name"),
            User.email.label("email"),
            User.avatar_url.label("avatar_url"),
            _total_tests,
            func.sum(TestResult.total_questions).label("total_questions"),
            func.sum(TestResult.correct_count).label("total_correct"),
            _average_percentage,
            func.max(TestResult.percentage).label("best_percentage"),
            func.sum(TestResult.duration_ms).label("total_duration_ms"),
            _composite_score,
        )
        .join(User, User.id == TestResult.user_id)
        .group_by(TestResult.user_id, User.full_name, User.email, User.avatar_url)
    )


def _rows(query: Query) -> List[Dict[str, Any]]:
    return [dict(row._mapping) for row in query.all()]


def top_users_in_period(
    db: Session, start_date: datetime, end_date: datetime, limit: int
) -> List[Dict[str, Any]]:
    """Qualifying results created in [start_date, end_date], by composite score."""
    query = (
        _aggregate_by_user(db)
        .filter(
            qualifying_result_filter(),
            TestResult.created_at >= start_date,
            TestResult.created_at <= end_date,
        )
        .order_by(_composite_score.desc(), TestResult.user_id)
        .limit(limit)
    )
    return _rows(query)


def top_performers(db: Session, limit: int) -> List[Dict[str, Any]]:
    """Users with enough substantial active results, by average percentage."""
    query = (
        _aggregate_by_user(db)
        .filter(
            TestResult.status == ResultStatus.ACTIVE,
            TestResult.total_questions >= MIN_QUESTIONS_PER_PERFORMER_RESULT,
        )
        .having(func.count(TestResult.id) >= MIN_RESULTS_PER_PERFORMER)
        .order_by(_average_percentage.desc(), TestResult.user_id)
        .limit(limit)
    )
    return _rows(query)


def top_test_takers(db: Session, limit: int) -> List[Dict[str, Any]]:
    """Users with the most active results, regardless of score."""
    query = (
        _aggregate_by_user(db)
        .filter(TestResult.status == ResultStatus.ACTIVE)
        .order_by(_total_tests.desc(), TestResult.user_id)
        .limit(limit)
    )
    return _rows(query)
