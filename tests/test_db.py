"""Tests for the database layer."""
from __future__ import annotations

import pytest

from esl_quiz.db import Database, PersistenceError, WordListNotFound
from esl_quiz.models import WordEntry


@pytest.fixture
def farm_list(tmp_db, farm_words):
    return tmp_db.create_word_list(
        title="Farm Animals",
        words=farm_words,
        created_by="teacher-1",
        difficulty="beginner",
        is_public=True,
        description="Animals on the farm",
        category="animals",
        tags=["farm", "nouns"],
    )


class TestWordLists:
    def test_create_and_get(self, tmp_db, farm_list, farm_words):
        wl = tmp_db.get_word_list(farm_list)
        assert wl.title == "Farm Animals"
        assert wl.words == farm_words
        assert wl.is_public is True
        assert wl.usage_count == 0
        assert wl.tags == ["farm", "nouns"]
        assert wl.created_at

    def test_word_order_preserved(self, tmp_db, farm_list, farm_words):
        words = tmp_db.get_word_list(farm_list).words
        assert [w.word for w in words] == [w.word for w in farm_words]

    def test_get_missing(self, tmp_db):
        with pytest.raises(WordListNotFound):
            tmp_db.get_word_list("missing")

    def test_user_lists(self, tmp_db, farm_list, four_words):
        tmp_db.create_word_list("Other", four_words, created_by="teacher-2")
        lists = tmp_db.get_user_word_lists("teacher-1")
        assert [wl.id for wl in lists] == [farm_list]

    def test_public_lists_by_usage(self, tmp_db, farm_list, four_words):
        basics = tmp_db.create_word_list("Basics", four_words, is_public=True, difficulty="starter")
        tmp_db.create_word_list("Private", four_words, is_public=False)
        tmp_db.increment_usage(basics)
        lists = tmp_db.get_public_word_lists()
        assert [wl.title for wl in lists] == ["Basics", "Farm Animals"]

    def test_all_lists_include_private(self, tmp_db, farm_list, four_words):
        tmp_db.create_word_list("Basics", four_words, is_public=False)
        lists = tmp_db.get_all_word_lists()
        assert [wl.title for wl in lists] == ["Basics", "Farm Animals"]

    def test_public_list_filters(self, tmp_db, farm_list, four_words):
        tmp_db.create_word_list("Basics", four_words, is_public=True, difficulty="starter")
        assert [wl.id for wl in tmp_db.get_public_word_lists(difficulty="beginner")] == [farm_list]
        assert tmp_db.get_public_word_lists(category="food") == []
        assert len(tmp_db.get_public_word_lists(limit=1)) == 1

    def test_search(self, tmp_db, farm_list, four_words):
        tmp_db.create_word_list("Basics", four_words, is_public=True, description="first words")
        assert [wl.id for wl in tmp_db.search_word_lists("FARM")] == [farm_list]
        assert [wl.title for wl in tmp_db.search_word_lists("first")] == ["Basics"]
        assert [wl.id for wl in tmp_db.search_word_lists("noun")] == [farm_list]
        assert tmp_db.search_word_lists("zebra") == []

    def test_search_skips_private(self, tmp_db, four_words):
        tmp_db.create_word_list("Secret farm", four_words, is_public=False)
        assert tmp_db.search_word_lists("farm") == []

    def test_update(self, tmp_db, farm_list, four_words):
        wl = tmp_db.update_word_list(farm_list, title="Renamed", is_public=False, words=four_words)
        assert wl.title == "Renamed"
        assert wl.is_public is False
        assert wl.words == four_words
        assert wl.difficulty == "beginner"

    def test_update_unknown_field(self, tmp_db, farm_list):
        with pytest.raises(ValueError):
            tmp_db.update_word_list(farm_list, usage_count=99)

    def test_update_missing(self, tmp_db):
        with pytest.raises(WordListNotFound):
            tmp_db.update_word_list("missing", title="x")

    def test_delete(self, tmp_db, farm_list):
        assert tmp_db.delete_word_list(farm_list) is True
        assert tmp_db.delete_word_list(farm_list) is False
        assert tmp_db.get_word_list_count() == 0

    def test_increment_usage(self, tmp_db, farm_list):
        tmp_db.increment_usage(farm_list)
        tmp_db.increment_usage(farm_list)
        assert tmp_db.get_word_list(farm_list).usage_count == 2


class TestLeaderboard:
    def test_submit_creates_entry(self, tmp_db):
        tmp_db.submit_score("u1", "Ana", "default", 7, 10, "2024-12")
        entries = tmp_db.fetch_period_entries("2024-12")
        assert list(entries) == ["u1"]
        assert entries["u1"].total_score == 7
        assert entries["u1"].games_played == 1

    def test_submit_merges(self, tmp_db):
        tmp_db.submit_score("u1", "Ana", "default", 7, 10, "2024-12")
        tmp_db.submit_score("u1", "Ana B.", "default", 5, 5, "2024-12")
        entry = tmp_db.fetch_period_entries("2024-12")["u1"]
        assert entry.total_score == 12
        assert entry.games_played == 2
        assert entry.display_name == "Ana B."

    def test_periods_are_separate(self, tmp_db):
        tmp_db.submit_score("u1", "Ana", "default", 7, 10, "2024-11")
        tmp_db.submit_score("u1", "Ana", "default", 3, 10, "2024-12")
        assert tmp_db.fetch_period_entries("2024-11")["u1"].total_score == 7
        assert tmp_db.fetch_period_entries("2024-12")["u1"].total_score == 3
        assert tmp_db.get_period_keys() == ["2024-12", "2024-11"]

    def test_first_submission_order(self, tmp_db):
        tmp_db.submit_score("u2", "Ben", "default", 1, 1, "2024-12")
        tmp_db.submit_score("u1", "Ana", "default", 1, 1, "2024-12")
        tmp_db.submit_score("u2", "Ben", "default", 1, 1, "2024-12")
        assert list(tmp_db.fetch_period_entries("2024-12")) == ["u2", "u1"]

    def test_empty_period(self, tmp_db):
        assert tmp_db.fetch_period_entries("1999-01") == {}

    def test_write_failure_is_reported(self, tmp_db):
        tmp_db.conn.execute("DROP TABLE leaderboard")
        with pytest.raises(PersistenceError):
            tmp_db.submit_score("u1", "Ana", "default", 7, 10, "2024-12")
        assert tmp_db.get_user_progress("u1") == []

    def test_read_failure_is_reported(self, tmp_db):
        tmp_db.conn.execute("DROP TABLE leaderboard")
        with pytest.raises(PersistenceError):
            tmp_db.fetch_period_entries("2024-12")


class TestProgress:
    def test_history_newest_first(self, tmp_db):
        tmp_db.submit_score("u1", "Ana", "list-a", 3, 4, "2024-12", word_list_title="A")
        tmp_db.submit_score("u1", "Ana", "list-b", 5, 5, "2024-12", word_list_title="B")
        history = tmp_db.get_user_progress("u1")
        assert [h["word_list_id"] for h in history] == ["list-b", "list-a"]
        assert history[1]["score"] == 3
        assert history[1]["total_questions"] == 4

    def test_history_for_list(self, tmp_db):
        tmp_db.submit_score("u1", "Ana", "list-a", 3, 4, "2024-12")
        tmp_db.submit_score("u1", "Ana", "list-b", 5, 5, "2024-12")
        history = tmp_db.get_user_progress("u1", word_list_id="list-a")
        assert len(history) == 1


class TestAudioCache:
    def test_roundtrip(self, tmp_db):
        tmp_db.set_audio_cache("abc", "/tmp/abc.mp3", "fake")
        assert tmp_db.get_audio_cache("abc") == "/tmp/abc.mp3"
        assert tmp_db.get_audio_cache("missing") is None


class TestSchema:
    def test_reopen_keeps_data(self, tmp_path):
        db = Database(tmp_path / "data.db")
        list_id = db.create_word_list("Keep", [WordEntry("cat")])
        db.close()
        db = Database(tmp_path / "data.db")
        assert db.get_word_list(list_id).title == "Keep"
        db.close()
