"""Monthly leaderboard ranking.

Ranks are dense and distinct: entries are ordered by total score,
highest first, and numbered 1..n by position. Ties keep their input
order, so two players on 100 points are ranked 1 and 2, never 1 and 1.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime

from esl_quiz.models import LeaderboardEntry, RankedEntry, UserStats

TOP_TIER = 3


def month_key(year: int, month: int) -> str:
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range: {month}")
    return f"{year:04d}-{month:02d}"


def period_key(when: datetime | None = None) -> str:
    """Calendar-month key such as "2024-12" for ``when`` (default: now, local time)."""
    when = when or datetime.now()
    return month_key(when.year, when.month)


def _as_list(
    entries: Mapping[str, LeaderboardEntry] | Iterable[LeaderboardEntry],
) -> list[LeaderboardEntry]:
    if isinstance(entries, Mapping):
        return list(entries.values())
    return list(entries)


def rank(
    entries: Mapping[str, LeaderboardEntry] | Iterable[LeaderboardEntry],
) -> list[RankedEntry]:
    ordered = sorted(_as_list(entries), key=lambda e: -e.total_score)
    return [
        RankedEntry(
            rank=position,
            user_id=e.user_id,
            display_name=e.display_name,
            total_score=e.total_score,
            games_played=e.games_played,
        )
        for position, e in enumerate(ordered, start=1)
    ]


def top_n(
    entries: Mapping[str, LeaderboardEntry] | Iterable[LeaderboardEntry],
    n: int,
) -> list[RankedEntry]:
    return rank(entries)[: max(0, n)]


def average_score(total_score: int, games_played: int) -> int:
    """Points per game, halves rounded up."""
    if games_played <= 0:
        return 0
    return (2 * total_score + games_played) // (2 * games_played)


def stats_for(
    entries: Mapping[str, LeaderboardEntry] | Iterable[LeaderboardEntry],
    user_id: str,
) -> UserStats:
    """A player's standing for the period.

    ``gap_to_rank_three`` is the number of points needed to overtake the
    current third place; it is None when the player is already in the top
    three, when fewer than three players exist, or when the player has no
    entry. An unknown player gets rank None and zero totals.
    """
    ranked = rank(entries)
    mine = next((r for r in ranked if r.user_id == user_id), None)
    if mine is None:
        return UserStats(total_score=0, games_played=0, rank=None, gap_to_rank_three=None)

    gap = None
    if mine.rank > TOP_TIER and len(ranked) >= TOP_TIER:
        third = ranked[TOP_TIER - 1]
        gap = max(0, third.total_score - mine.total_score + 1)

    return UserStats(
        total_score=mine.total_score,
        games_played=mine.games_played,
        rank=mine.rank,
        gap_to_rank_three=gap,
        average_score=average_score(mine.total_score, mine.games_played),
    )
