"""Tests for leaderboard ranking."""
from __future__ import annotations

import copy
from datetime import datetime

import pytest

from esl_quiz.models import LeaderboardEntry
from esl_quiz.ranking import average_score, month_key, period_key, rank, stats_for, top_n


def _entries(*rows):
    return {uid: LeaderboardEntry(uid, uid, score, 1) for uid, score in rows}


class TestRank:
    def test_sorted_by_score(self, period_entries):
        ranked = rank(period_entries)
        assert [r.display_name for r in ranked] == ["Chloe", "Ana", "Ben", "Dev", "Eli"]
        assert [r.rank for r in ranked] == [1, 2, 3, 4, 5]

    def test_ties_keep_input_order(self):
        ranked = rank(_entries(("A", 100), ("B", 100), ("C", 50)))
        assert [(r.user_id, r.rank) for r in ranked] == [("A", 1), ("B", 2), ("C", 3)]

    def test_ties_follow_input_order_not_name(self):
        ranked = rank(_entries(("B", 100), ("A", 100)))
        assert [r.user_id for r in ranked] == ["B", "A"]

    def test_accepts_iterable(self, period_entries):
        assert rank(list(period_entries.values())) == rank(period_entries)

    def test_empty(self):
        assert rank({}) == []

    def test_does_not_mutate_input(self, period_entries):
        before = copy.deepcopy(period_entries)
        rank(period_entries)
        stats_for(period_entries, "u5")
        assert period_entries == before
        assert list(period_entries) == list(before)


class TestTopN:
    def test_first_n(self, period_entries):
        top = top_n(period_entries, 3)
        assert [r.user_id for r in top] == ["u3", "u1", "u2"]

    def test_n_larger_than_entries(self, period_entries):
        assert len(top_n(period_entries, 50)) == 5

    def test_zero_and_negative(self, period_entries):
        assert top_n(period_entries, 0) == []
        assert top_n(period_entries, -1) == []


class TestStatsFor:
    def test_gap_to_rank_three(self, period_entries):
        stats = stats_for(period_entries, "u5")
        assert stats.rank == 5
        assert stats.total_score == 80
        assert stats.gap_to_rank_three == 41

    def test_inside_top_three(self, period_entries):
        stats = stats_for(period_entries, "u2")
        assert stats.rank == 3
        assert stats.gap_to_rank_three is None

    def test_fewer_than_three_entries(self):
        stats = stats_for(_entries(("A", 100), ("B", 50)), "B")
        assert stats.rank == 2
        assert stats.gap_to_rank_three is None

    def test_tied_with_third_place(self):
        stats = stats_for(_entries(("A", 90), ("B", 80), ("C", 70), ("D", 70)), "D")
        assert stats.rank == 4
        assert stats.gap_to_rank_three == 1

    def test_unknown_user(self, period_entries):
        stats = stats_for(period_entries, "nobody")
        assert stats.rank is None
        assert stats.total_score == 0
        assert stats.games_played == 0
        assert stats.gap_to_rank_three is None

    def test_unknown_user_empty_period(self):
        assert stats_for({}, "nobody").rank is None

    def test_average_score(self, period_entries):
        assert stats_for(period_entries, "u3").average_score == 33


class TestPeriodKeys:
    def test_month_key(self):
        assert month_key(2024, 12) == "2024-12"
        assert month_key(2025, 3) == "2025-03"

    def test_month_out_of_range(self):
        with pytest.raises(ValueError):
            month_key(2024, 13)

    def test_period_key_for_date(self):
        assert period_key(datetime(2024, 1, 31, 23, 59)) == "2024-01"

    def test_period_key_now(self):
        now = datetime.now()
        assert period_key() == f"{now.year:04d}-{now.month:02d}"


class TestAverageScore:
    def test_no_games(self):
        assert average_score(0, 0) == 0

    def test_rounds(self):
        assert average_score(10, 3) == 3

    def test_halves_round_up(self):
        assert average_score(5, 2) == 3
        assert average_score(15, 2) == 8
