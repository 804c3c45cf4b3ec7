"""Shared test fixtures."""
from __future__ import annotations

import random
from pathlib import Path

import pytest

from esl_quiz.db import Database
from esl_quiz.models import LeaderboardEntry, WordEntry
from esl_quiz.quiz import QuizEngine


class FakeTTS:
    """Simple fake TTS that avoids AsyncMock's `name` attribute issue."""

    def __init__(self, side_effect=None):
        self._side_effect = side_effect
        self.synthesize_called = 0
        self.spoken: list[str] = []

    async def synthesize(self, text: str, output_path: Path) -> Path:
        self.synthesize_called += 1
        self.spoken.append(text)
        if self._side_effect:
            raise self._side_effect
        output_path.write_bytes(b"fake mp3 data")
        return output_path

    def name(self) -> str:
        return "fake-tts"


@pytest.fixture
def tmp_db(tmp_path):
    """Create a fresh temporary database."""
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def four_words():
    return [
        WordEntry("cat", "cat", "animals"),
        WordEntry("dog", "dog", "animals"),
        WordEntry("run", "run", "actions"),
        WordEntry("jump", "jump", "actions"),
    ]


@pytest.fixture
def farm_words():
    return [
        WordEntry("cow", "kow", "big animals"),
        WordEntry("horse", None, "big animals"),
        WordEntry("pig", None, "small animals"),
        WordEntry("duck", None, "birds"),
        WordEntry("goat", None, "small animals"),
        WordEntry("sheep", None, "small animals"),
    ]


@pytest.fixture
def engine():
    """Engine with a seeded generator so sessions are reproducible."""
    return QuizEngine(rng=random.Random(1234))


@pytest.fixture
def period_entries():
    """Leaderboard entries in first-submission order."""
    entries = [
        LeaderboardEntry("u1", "Ana", 150, 5),
        LeaderboardEntry("u2", "Ben", 120, 4),
        LeaderboardEntry("u3", "Chloe", 200, 6),
        LeaderboardEntry("u4", "Dev", 90, 3),
        LeaderboardEntry("u5", "Eli", 80, 4),
    ]
    return {e.user_id: e for e in entries}


@pytest.fixture
def word_list_md_content():
    """Minimal markdown word list for parser testing."""
    return """\
# Farm Animals

Difficulty: beginner
Category: animals
Tags: farm, nouns

## Big animals

| Word | Pronunciation |
|------|---------------|
| **cow** | kow |
| **horse** | |

## Birds

| Word |
|------|
| **duck** |
| **hen** |
"""
