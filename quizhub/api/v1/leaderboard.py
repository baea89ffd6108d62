"""
Leaderboard endpoints.

Public limit ranges and the one-year cap on custom periods are enforced
here; LeaderboardService itself accepts any positive limit.
"""
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from quizhub.core.auth import get_current_user
from quizhub.core.datetime_utils import ensure_timezone_aware
from quizhub.core.error_responses import ErrorMessages, raise_validation_error
from quizhub.core.leaderboard import (
    DEFAULT_LEADERBOARD_LIMIT,
    MAX_PERIOD_DAYS,
    MAX_PERIOD_LIMIT,
    MAX_RANKING_LIMIT,
    RankedUser,
)
from quizhub.models import User, get_db
from quizhub.schemas.leaderboard import LeaderboardEntry, LeaderboardResponse
from quizhub.services.leaderboard_service import LeaderboardService

router = APIRouter()


def _response(
    message: str,
    entries: List[RankedUser],
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> LeaderboardResponse:
    return LeaderboardResponse(
        message=message,
        count=len(entries),
        start_date=start_date,
        end_date=end_date,
        leaderboard=[LeaderboardEntry(**entry.to_dict()) for entry in entries],
    )


@router.get("/week", response_model=LeaderboardResponse)
def weekly_leaderboard(
    limit: int = Query(DEFAULT_LEADERBOARD_LIMIT, ge=1, le=MAX_PERIOD_LIMIT),
    _user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Composite-score ranking over the last 7 days."""
    entries = LeaderboardService(db).top_users_by_week(limit)
    return _response("Weekly leaderboard retrieved successfully.", entries)


@router.get("/month", response_model=LeaderboardResponse)
def monthly_leaderboard(
    limit: int = Query(DEFAULT_LEADERBOARD_LIMIT, ge=1, le=MAX_PERIOD_LIMIT),
    _user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Composite-score ranking over the last calendar month."""
    entries = LeaderboardService(db).top_users_by_month(limit)
    return _response("Monthly leaderboard retrieved successfully.", entries)


@router.get("/period", response_model=LeaderboardResponse)
def period_leaderboard(
    start_date: datetime = Query(..., description="Inclusive period start"),
    end_date: datetime = Query(..., description="Inclusive period end"),
    limit: int = Query(DEFAULT_LEADERBOARD_LIMIT, ge=1, le=MAX_PERIOD_LIMIT),
    _user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Composite-score ranking over a custom period of at most one year.

    Naive datetimes are read as UTC and offsets are converted to UTC.
    """
    start = ensure_timezone_aware(start_date).astimezone(timezone.utc)
    end = ensure_timezone_aware(end_date).astimezone(timezone.utc)
    if start >= end:
        raise_validation_error(ErrorMessages.INVALID_PERIOD)
    if end - start > timedelta(days=MAX_PERIOD_DAYS):
        raise_validation_error(ErrorMessages.PERIOD_TOO_LONG)

    entries = LeaderboardService(db).top_users_in_period(start, end, limit)
    return _response(
        "Leaderboard retrieved successfully.", entries, start_date=start, end_date=end
    )


@router.get("/top-performers", response_model=LeaderboardResponse)
def top_performers(
    limit: int = Query(DEFAULT_LEADERBOARD_LIMIT, ge=1, le=MAX_RANKING_LIMIT),
    _user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Highest average percentage among users with enough qualifying results."""
    entries = LeaderboardService(db).top_performers(limit)
    return _response("Top performers retrieved successfully.", entries)


@router.get("/top-test-takers", response_model=LeaderboardResponse)
def top_test_takers(
    limit: int = Query(DEFAULT_LEADERBOARD_LIMIT, ge=1, le=MAX_RANKING_LIMIT),
    _user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Users with the most active results."""
    entries = LeaderboardService(db).top_test_takers(limit)
    return _response("Top test takers retrieved successfully.", entries)
