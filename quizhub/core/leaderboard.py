"""
Leaderboard rules and ranked entry construction.

A result "qualifies" for personal history and period leaderboards when it
is active and looks like a real attempt: it scored above zero or lasted at
least MIN_ATTEMPT_DURATION_MS. Zero-score attempts shorter than that are
treated as abandoned.
"""
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

# Attempts shorter than this with a 0% score are treated as abandoned
MIN_ATTEMPT_DURATION_MS = 10_000

# Fixed bonus applied to percentage * correct_count in the composite score
COMPOSITE_SCORE_MULTIPLIER = 1.1

# topPerformers volume thresholds
MIN_QUESTIONS_PER_PERFORMER_RESULT = 3
MIN_RESULTS_PER_PERFORMER = 3

# Handler-side limits
MAX_PERIOD_LIMIT = 50
MAX_RANKING_LIMIT = 20
DEFAULT_LEADERBOARD_LIMIT = 10
MAX_PERIOD_DAYS = 366


@dataclass
class RankedUser:
    """One row of a leaderboard."""

    rank: int
    user_id: str
    full_name: Optional[str]
    email: Optional[str]
    avatar_url: Optional[str]
    total_tests: int
    total_questions: int
    total_correct: int
    average_percentage: float
    best_percentage: int
    total_duration_ms: int
    composite_score: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _as_int(value: Any) -> int:
    return int(value) if value is not None else 0


def _as_rounded(value: Any) -> float:
    return round(float(value), 2) if value is not None else 0.0


def rank_rows(rows: Iterable[Mapping[str, Any]]) -> List[RankedUser]:
    """
    Turn already-sorted aggregate rows into ranked entries.

    Ranks are assigned 1..N in the given order. Equal scores keep the
    order the store returned them in; ranks are not shared.
    """
    return [
        RankedUser(
            rank=position,
            user_id=row["user_id"],
            full_name=row.get("full_name"),
            email=row.get("email"),
            avatar_url=row.get("avatar_url"),
            total_tests=_as_int(row.get("total_tests")),
            total_questions=_as_int(row.get("total_questions")),
            total_correct=_as_int(row.get("total_correct")),
            average_percentage=_as_rounded(row.get("average_percentage")),
            best_percentage=_as_int(row.get("best_percentage")),
            total_duration_ms=_as_int(row.get("total_duration_ms")),
            composite_score=_as_rounded(row.get("composite_score")),
        )
        for position, row in enumerate(rows, start=1)
    ]
