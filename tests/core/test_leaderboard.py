"""
Tests for leaderboard row ranking.
"""
from decimal import Decimal

from quizhub.core.leaderboard import rank_rows


def _row(user_id: str, **overrides):
    row = {
        "user_id": user_id,
        "full_name": f"User {user_id}",
        "email": f"{user_id}@example.com",
        "avatar_url": None,
        "total_tests": 2,
        "total_questions": 10,
        "total_correct": 8,
        "average_percentage": 80.0,
        "best_percentage": 90,
        "total_duration_ms": 120000,
        "composite_score": 704.0,
    }
    row.update(overrides)
    return row


class TestRankRows:
    def test_ranks_follow_input_order(self):
        ranked = rank_rows([_row("a"), _row("b"), _row("c")])

        assert [(r.rank, r.user_id) for r in ranked] == [(1, "a"), (2, "b"), (3, "c")]

    def test_equal_scores_get_distinct_ranks(self):
        ranked = rank_rows([_row("a"), _row("b")])

        assert [r.rank for r in ranked] == [1, 2]

    def test_store_numeric_types_normalized(self):
        ranked = rank_rows(
            [
                _row(
                    "a",
                    total_questions=Decimal("10"),
                    average_percentage=Decimal("66.666666"),
                    composite_score=333.33333,
                    total_duration_ms=None,
                )
            ]
        )

        entry = ranked[0].to_dict()
        assert entry["total_questions"] == 10
        assert entry["average_percentage"] == 66.67
        assert entry["composite_score"] == 333.33
        assert entry["total_duration_ms"] == 0

    def test_empty(self):
        assert rank_rows([]) == []
