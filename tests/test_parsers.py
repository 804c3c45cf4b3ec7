"""Tests for the markdown word list parser."""
from __future__ import annotations

from esl_quiz.parsers.wordlist_parser import parse_word_list, parse_word_list_file


class TestWordListParser:
    def test_parse_basic(self, tmp_path, word_list_md_content):
        f = tmp_path / "farm.md"
        f.write_text(word_list_md_content)
        wl = parse_word_list_file(f)

        assert wl.title == "Farm Animals"
        assert [w.word for w in wl.words] == ["cow", "horse", "duck", "hen"]

    def test_metadata(self, word_list_md_content):
        wl = parse_word_list(word_list_md_content)
        assert wl.difficulty == "beginner"
        assert wl.category == "animals"
        assert wl.tags == ["farm", "nouns"]
        assert wl.language == "en"

    def test_subcategories(self, word_list_md_content):
        wl = parse_word_list(word_list_md_content)
        by_word = {w.word: w for w in wl.words}
        assert by_word["cow"].subcategory == "Big animals"
        assert by_word["duck"].subcategory == "Birds"

    def test_pronunciation_hints(self, word_list_md_content):
        wl = parse_word_list(word_list_md_content)
        by_word = {w.word: w for w in wl.words}
        assert by_word["cow"].pronunciation_hint == "kow"
        assert by_word["horse"].pronunciation_hint is None
        assert by_word["hen"].pronunciation_hint is None

    def test_title_defaults_to_file_name(self, tmp_path):
        f = tmp_path / "colors.md"
        f.write_text("| **red** |\n| **blue** |\n")
        wl = parse_word_list_file(f)
        assert wl.title == "colors"
        assert len(wl.words) == 2

    def test_empty_file(self):
        wl = parse_word_list("# Empty\n\nNo tables here.\n")
        assert wl.words == []
        assert wl.title == "Empty"
