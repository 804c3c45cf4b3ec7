from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path

from esl_quiz.models import LeaderboardEntry, WordEntry, WordList

SCHEMA = """
CREATE TABLE IF NOT EXISTS word_lists (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    difficulty TEXT DEFAULT '',
    is_public INTEGER DEFAULT 0,
    usage_count INTEGER DEFAULT 0,
    created_by TEXT DEFAULT '',
    description TEXT DEFAULT '',
    category TEXT DEFAULT '',
    language TEXT DEFAULT 'en',
    tags_json TEXT DEFAULT '[]',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS list_words (
    list_id TEXT NOT NULL REFERENCES word_lists(id),
    position INTEGER NOT NULL,
    word TEXT NOT NULL,
    pronunciation_hint TEXT,
    subcategory TEXT,
    PRIMARY KEY (list_id, position)
);

CREATE TABLE IF NOT EXISTS leaderboard (
    period_key TEXT NOT NULL,
    user_id TEXT NOT NULL,
    display_name TEXT NOT NULL,
    total_score INTEGER DEFAULT 0,
    games_played INTEGER DEFAULT 0,
    last_updated TEXT NOT NULL,
    PRIMARY KEY (period_key, user_id)
);

CREATE TABLE IF NOT EXISTS game_progress (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    word_list_id TEXT NOT NULL,
    word_list_title TEXT,
    score INTEGER NOT NULL,
    total_questions INTEGER NOT NULL,
    period_key TEXT NOT NULL,
    completed_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS audio_cache (
    sentence_hash TEXT PRIMARY KEY,
    file_path TEXT NOT NULL,
    tts_provider TEXT,
    created_at TEXT NOT NULL
);
"""

WORD_LIST_FIELDS = (
    "title", "difficulty", "is_public", "description", "category", "language", "tags", "words",
)


class PersistenceError(Exception):
    """A leaderboard read or write could not be completed."""


class WordListNotFound(LookupError):
    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    # ── Word lists ────────────────────────────────────────────────────────

    def _insert_words(self, list_id: str, words: list[WordEntry]) -> None:
        self.conn.execute("DELETE FROM list_words WHERE list_id = ?", (list_id,))
        for position, w in enumerate(words):
            self.conn.execute(
                "INSERT INTO list_words (list_id, position, word, pronunciation_hint, subcategory) "
                "VALUES (?, ?, ?, ?, ?)",
                (list_id, position, w.word, w.pronunciation_hint, w.subcategory),
            )

    def _row_to_word_list(self, row: sqlite3.Row) -> WordList:
        word_rows = self.conn.execute(
            "SELECT word, pronunciation_hint, subcategory FROM list_words "
            "WHERE list_id = ? ORDER BY position",
            (row["id"],),
        ).fetchall()
        return WordList(
            id=row["id"],
            title=row["title"],
            words=[WordEntry(r["word"], r["pronunciation_hint"], r["subcategory"]) for r in word_rows],
            difficulty=row["difficulty"],
            is_public=bool(row["is_public"]),
            usage_count=row["usage_count"],
            created_by=row["created_by"],
            description=row["description"],
            category=row["category"],
            language=row["language"],
            tags=json.loads(row["tags_json"] or "[]"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def create_word_list(
        self,
        title: str,
        words: list[WordEntry],
        created_by: str = "",
        difficulty: str = "",
        is_public: bool = False,
        description: str = "",
        category: str = "",
        language: str = "en",
        tags: list[str] | None = None,
    ) -> str:
        list_id = str(uuid.uuid4())
        now = _now()
        self.conn.execute(
            "INSERT INTO word_lists (id, title, difficulty, is_public, created_by, "
            "description, category, language, tags_json, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (list_id, title, difficulty, 1 if is_public else 0, created_by,
             description, category, language, json.dumps(tags or []), now, now),
        )
        self._insert_words(list_id, words)
        self.conn.commit()
        return list_id

    def get_word_list(self, list_id: str) -> WordList:
        row = self.conn.execute(
            "SELECT * FROM word_lists WHERE id = ?", (list_id,)
        ).fetchone()
        if row is None:
            raise WordListNotFound(f"Word list not found: {list_id}")
        return self._row_to_word_list(row)

    def get_user_word_lists(self, user_id: str) -> list[WordList]:
        rows = self.conn.execute(
            "SELECT * FROM word_lists WHERE created_by = ? ORDER BY updated_at DESC",
            (user_id,),
        ).fetchall()
        return [self._row_to_word_list(r) for r in rows]

    def get_all_word_lists(self) -> list[WordList]:
        rows = self.conn.execute("SELECT * FROM word_lists ORDER BY title ASC").fetchall()
        return [self._row_to_word_list(r) for r in rows]

    def get_public_word_lists(
        self,
        difficulty: str | None = None,
        category: str | None = None,
        language: str | None = None,
        limit: int | None = None,
    ) -> list[WordList]:
        """Public lists, most used first."""
        sql = "SELECT * FROM word_lists WHERE is_public = 1"
        params: list = []
        for column, value in (("difficulty", difficulty), ("category", category), ("language", language)):
            if value:
                sql += f" AND {column} = ?"
                params.append(value)
        sql += " ORDER BY usage_count DESC, title ASC"
        if limit:
            sql += " LIMIT ?"
            params.append(limit)
        rows = self.conn.execute(sql, params).fetchall()
        return [self._row_to_word_list(r) for r in rows]

    def search_word_lists(self, term: str) -> list[WordList]:
        """Public lists whose title, description or tags contain *term*."""
        needle = term.strip().lower()
        rows = self.conn.execute(
            "SELECT * FROM word_lists WHERE is_public = 1 ORDER BY title"
        ).fetchall()
        results = []
        for wl in (self._row_to_word_list(r) for r in rows):
            if (
                needle in wl.title.lower()
                or needle in wl.description.lower()
                or any(needle in t.lower() for t in wl.tags)
            ):
                results.append(wl)
        return results

    def update_word_list(self, list_id: str, **changes) -> WordList:
        unknown = set(changes) - set(WORD_LIST_FIELDS)
        if unknown:
            raise ValueError(f"Unknown word list fields: {', '.join(sorted(unknown))}")
        self.get_word_list(list_id)

        words = changes.pop("words", None)
        if "tags" in changes:
            changes["tags_json"] = json.dumps(changes.pop("tags"))
        if "is_public" in changes:
            changes["is_public"] = 1 if changes["is_public"] else 0
        changes["updated_at"] = _now()

        assignments = ", ".join(f"{k} = ?" for k in changes)
        self.conn.execute(
            f"UPDATE word_lists SET {assignments} WHERE id = ?",
            (*changes.values(), list_id),
        )
        if words is not None:
            self._insert_words(list_id, words)
        self.conn.commit()
        return self.get_word_list(list_id)

    def delete_word_list(self, list_id: str) -> bool:
        self.conn.execute("DELETE FROM list_words WHERE list_id = ?", (list_id,))
        cur = self.conn.execute("DELETE FROM word_lists WHERE id = ?", (list_id,))
        self.conn.commit()
        return cur.rowcount > 0

    def increment_usage(self, list_id: str) -> None:
        self.conn.execute(
            "UPDATE word_lists SET usage_count = usage_count + 1 WHERE id = ?",
            (list_id,),
        )
        self.conn.commit()

    def get_word_list_count(self) -> int:
        row = self.conn.execute("SELECT COUNT(*) FROM word_lists").fetchone()
        return row[0]

    # ── Leaderboard ───────────────────────────────────────────────────────

    def submit_score(
        self,
        user_id: str,
        display_name: str,
        word_list_id: str,
        score: int,
        answered_count: int,
        period_key: str,
        word_list_title: str | None = None,
        games_played: int = 1,
    ) -> None:
        """Merge a finished game into the period's leaderboard and the player's history."""
        now = _now()
        try:
            self.conn.execute(
                "INSERT INTO leaderboard "
                "(period_key, user_id, display_name, total_score, games_played, last_updated) "
                "VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT (period_key, user_id) DO UPDATE SET "
                "display_name = excluded.display_name, "
                "total_score = total_score + excluded.total_score, "
                "games_played = games_played + excluded.games_played, "
                "last_updated = excluded.last_updated",
                (period_key, user_id, display_name, score, games_played, now),
            )
            self.conn.execute(
                "INSERT INTO game_progress (user_id, word_list_id, word_list_title, score, "
                "total_questions, period_key, completed_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (user_id, word_list_id, word_list_title, score, answered_count, period_key, now),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise PersistenceError(f"Could not submit score for {user_id}: {e}") from e

    def fetch_period_entries(self, period_key: str) -> dict[str, LeaderboardEntry]:
        """All entries for a period, in the order players first scored."""
        try:
            rows = self.conn.execute(
                "SELECT user_id, display_name, total_score, games_played FROM leaderboard "
                "WHERE period_key = ? ORDER BY rowid",
                (period_key,),
            ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not load leaderboard {period_key}: {e}") from e
        return {
            r["user_id"]: LeaderboardEntry(
                user_id=r["user_id"],
                display_name=r["display_name"],
                total_score=r["total_score"],
                games_played=r["games_played"],
            )
            for r in rows
        }

    def get_period_keys(self) -> list[str]:
        rows = self.conn.execute(
            "SELECT DISTINCT period_key FROM leaderboard ORDER BY period_key DESC"
        ).fetchall()
        return [r[0] for r in rows]

    # ── Game history ──────────────────────────────────────────────────────

    def get_user_progress(self, user_id: str, word_list_id: str | None = None) -> list[dict]:
        """Finished games for a player, most recent first."""
        if word_list_id is None:
            rows = self.conn.execute(
                "SELECT * FROM game_progress WHERE user_id = ? ORDER BY id DESC",
                (user_id,),
            ).fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM game_progress WHERE user_id = ? AND word_list_id = ? "
                "ORDER BY id DESC",
                (user_id, word_list_id),
            ).fetchall()
        return [dict(r) for r in rows]

    # ── Audio cache ───────────────────────────────────────────────────────

    def get_audio_cache(self, sentence_hash: str) -> str | None:
        row = self.conn.execute(
            "SELECT file_path FROM audio_cache WHERE sentence_hash = ?",
            (sentence_hash,),
        ).fetchone()
        return row["file_path"] if row else None

    def set_audio_cache(
        self, sentence_hash: str, file_path: str, tts_provider: str
    ) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO audio_cache "
            "(sentence_hash, file_path, tts_provider, created_at) VALUES (?, ?, ?, ?)",
            (sentence_hash, file_path, tts_provider, _now()),
        )
        self.conn.commit()
