"""
Score computation for test results.

The stored statistics on a result are a pure function of its answers and
are recomputed every time answers are written.
"""
from dataclasses import dataclass
from typing import Any, Sequence


@dataclass(frozen=True)
class ResultStats:
    """Aggregate statistics derived from a result's answers."""

    total_questions: int
    correct_count: int
    percentage: int


def round_half_up_percentage(correct_count: int, total_questions: int) -> int:
    """
    Integer percentage of correct answers, rounded half up.

    Uses integer arithmetic so 1/8 (12.5%) reliably becomes 13 instead of
    depending on float representation or banker's rounding.

    Returns:
        0 when total_questions is 0, otherwise round(correct / total * 100)
    """
    if total_questions <= 0:
        return 0
    return (correct_count * 200 + total_questions) // (2 * total_questions)


def _is_correct(answer: Any) -> bool:
    value = (
        answer.get("is_correct")
        if isinstance(answer, dict)
        else getattr(answer, "is_correct", False)
    )
    return value is True


def compute_stats(answers: Sequence[Any]) -> ResultStats:
    """
    Reduce an answer list to total, correct and percentage.

    Accepts parsed answer records or their stored dict snapshots. Only an
    ``is_correct`` value of exactly True counts as correct.

    Args:
        answers: Answer records

    Returns:
        ResultStats for the given answers
    """
    total = len(answers)
    correct = sum(1 for answer in answers if _is_correct(answer))
    return ResultStats(
        total_questions=total,
        correct_count=correct,
        percentage=round_half_up_percentage(correct, total),
    )
