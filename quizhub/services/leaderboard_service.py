"""
Leaderboard operations over test results.

The service accepts any positive limit and any start/end pair; request
handlers are responsible for the public limit ranges and the one-year cap
on custom periods.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from quizhub.core.datetime_utils import (
    ensure_timezone_aware,
    subtract_one_month,
    utc_now,
)
from quizhub.core.db_error_handling import handle_db_error
from quizhub.core.error_responses import ErrorMessages, raise_validation_error
from quizhub.core.leaderboard import RankedUser, rank_rows
from quizhub.db import leaderboard_queries

logger = logging.getLogger(__name__)


class LeaderboardService:
    """Ranks users by their test results."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    def _run(
        self, name: str, query: Callable[[], List[Dict[str, Any]]]
    ) -> List[RankedUser]:
        with handle_db_error(self.db, f"compute {name} leaderboard"):
            rows = query()
        logger.debug(f"Leaderboard {name} returned {len(rows)} rows")
        return rank_rows(rows)

    @staticmethod
    def _check_limit(limit: int) -> None:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise_validation_error("limit must be a positive integer.")

    def top_users_in_period(
        self, start_date: datetime, end_date: datetime, limit: int
    ) -> List[RankedUser]:
        """
        Rank users by composite score over results created in a period.

        Only active results that are not likely-abandoned attempts count.
        Users without such results in the period are absent from the output.
        Both bounds are compared in UTC; naive values are taken as UTC.
        """
        self._check_limit(limit)
        start_date = ensure_timezone_aware(start_date).astimezone(timezone.utc)
        end_date = ensure_timezone_aware(end_date).astimezone(timezone.utc)
        if start_date >= end_date:
            raise_validation_error(ErrorMessages.INVALID_PERIOD)
        return self._run(
            "top_users_in_period",
            lambda: leaderboard_queries.top_users_in_period(
                self.db, start_date, end_date, limit
            ),
        )

    def top_users_by_week(
        self, limit: int, now: Optional[datetime] = None
    ) -> List[RankedUser]:
        """Composite-score ranking over the last 7 days."""
        end = now or self.clock()
        return self.top_users_in_period(end - timedelta(days=7), end, limit)

    def top_users_by_month(
        self, limit: int, now: Optional[datetime] = None
    ) -> List[RankedUser]:
        """Composite-score ranking over the last calendar month."""
        end = now or self.clock()
        return self.top_users_in_period(subtract_one_month(end), end, limit)

    def top_performers(self, limit: int) -> List[RankedUser]:
        """Highest average percentage among users with at least three
        results of three or more questions each."""
        self._check_limit(limit)
        return self._run(
            "top_performers",
            lambda: leaderboard_queries.top_performers(self.db, limit),
        )

    def top_test_takers(self, limit: int) -> List[RankedUser]:
        """Users with the most active results."""
        self._check_limit(limit)
        return self._run(
            "top_test_takers",
            lambda: leaderboard_queries.top_test_takers(self.db, limit),
        )
