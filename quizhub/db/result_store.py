"""
Persistence access for test results.

Thin wrapper over a SQLAlchemy Session. Callers are expected to run store
calls inside handle_db_error so failures roll back and surface as
INTERNAL_ERROR.
"""
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from quizhub.core.leaderboard import MIN_ATTEMPT_DURATION_MS
from quizhub.models.models import ResultStatus, Test, TestResult


def qualifying_result_filter() -> ColumnElement[bool]:
    """Active results that are not likely-abandoned attempts."""
    return and_(
        TestResult.status == ResultStatus.ACTIVE,
        or_(
            TestResult.percentage > 0,
            TestResult.duration_ms >= MIN_ATTEMPT_DURATION_MS,
        ),
    )


class ResultStore:
    """Reads and writes TestResult rows through one session."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, result_id: str) -> Optional[TestResult]:
        return self.db.query(TestResult).filter(TestResult.id == result_id).first()

    def get_test(self, test_id: str) -> Optional[Test]:
        return self.db.query(Test).filter(Test.id == test_id).first()

    def add(self, result: TestResult) -> TestResult:
        self.db.add(result)
        self.db.commit()
        self.db.refresh(result)
        return result

    def save(self, result: TestResult) -> TestResult:
        self.db.commit()
        self.db.refresh(result)
        return result

    def delete(self, result: TestResult) -> None:
        self.db.delete(result)
        self.db.commit()

    def list(
        self,
        user_id: Optional[str] = None,
        status: Optional[ResultStatus] = None,
        test_id: Optional[str] = None,
    ) -> List[TestResult]:
        """List results matching the given filters, newest first."""
        query = self.db.query(TestResult)
        if user_id is not None:
            query = query.filter(TestResult.user_id == user_id)
        if status is not None:
            query = query.filter(TestResult.status == status)
        if test_id is not None:
            query = query.filter(TestResult.test_id == test_id)
        return query.order_by(TestResult.created_at.desc()).all()

    def list_qualifying_for_user(
        self, user_id: str, test_id: Optional[str] = None
    ) -> List[TestResult]:
        """A user's active, non-abandoned results, newest first."""
        query = self.db.query(TestResult).filter(
            TestResult.user_id == user_id, qualifying_result_filter()
        )
        if test_id is not None:
            query = query.filter(TestResult.test_id == test_id)
        return query.order_by(TestResult.created_at.desc()).all()

    def list_active_for_user(self, user_id: str) -> List[TestResult]:
        """All of a user's active results, newest first."""
        return (
            self.db.query(TestResult)
            .filter(
                TestResult.user_id == user_id,
                TestResult.status == ResultStatus.ACTIVE,
            )
            .order_by(TestResult.created_at.desc())
            .all()
        )
