from __future__ import annotations

from dataclasses import dataclass, field

EASY = "easy"
NORMAL = "normal"
HARD = "hard"
DIFFICULTIES = (EASY, NORMAL, HARD)


@dataclass(frozen=True)
class WordEntry:
    word: str
    pronunciation_hint: str | None = None
    subcategory: str | None = None

    def to_dict(self) -> dict:
        return {
            "word": self.word,
            "pronunciation_hint": self.pronunciation_hint,
            "subcategory": self.subcategory,
        }


@dataclass
class WordList:
    id: str
    title: str
    words: list[WordEntry]
    difficulty: str = ""
    is_public: bool = False
    usage_count: int = 0
    created_by: str = ""
    description: str = ""
    category: str = ""
    language: str = "en"
    tags: list[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "words": [w.to_dict() for w in self.words],
            "difficulty": self.difficulty,
            "is_public": self.is_public,
            "usage_count": self.usage_count,
            "created_by": self.created_by,
            "description": self.description,
            "category": self.category,
            "language": self.language,
            "tags": self.tags,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class LeaderboardEntry:
    user_id: str
    display_name: str
    total_score: int = 0
    games_played: int = 0


@dataclass
class RankedEntry:
    rank: int
    user_id: str
    display_name: str
    total_score: int
    games_played: int

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "user_id": self.user_id,
            "display_name": self.display_name,
            "total_score": self.total_score,
            "games_played": self.games_played,
        }


@dataclass
class UserStats:
    total_score: int
    games_played: int
    rank: int | None
    gap_to_rank_three: int | None
    average_score: int = 0

    def to_dict(self) -> dict:
        return {
            "total_score": self.total_score,
            "games_played": self.games_played,
            "rank": self.rank,
            "gap_to_rank_three": self.gap_to_rank_three,
            "average_score": self.average_score,
        }


@dataclass
class QuizStats:
    score: int
    total: int
    percentage: int

    def to_dict(self) -> dict:
        return {"score": self.score, "total": self.total, "percentage": self.percentage}
