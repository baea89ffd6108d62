"""
Pydantic schemas for leaderboard endpoints.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class LeaderboardEntry(BaseModel):
    """One ranked user."""

    rank: int = Field(..., ge=1, description="1-based position")
    user_id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    total_tests: int
    total_questions: int
    total_correct: int
    average_percentage: float
    best_percentage: int
    total_duration_ms: int
    composite_score: float = Field(
        ..., description="Sum of percentage * correct_count * 1.1 over counted results"
    )

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class LeaderboardResponse(BaseModel):
    """Envelope for a leaderboard."""

    success: bool = True
    message: str
    count: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    leaderboard: List[LeaderboardEntry]
