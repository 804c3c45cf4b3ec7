"""Tests for configuration loading and saving."""
from __future__ import annotations

import json
from unittest.mock import patch

from esl_quiz.config import DEFAULTS, Settings, load_settings, save_settings


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.tts_provider == "edge-tts"
        assert s.default_difficulty == "normal"
        assert s.easy_match_probability == 0.5
        assert s.rng_seed is None

    def test_to_dict(self):
        s = Settings()
        d = s.to_dict()
        assert d["leaderboard_size"] == 10
        assert set(d) == set(DEFAULTS)

    def test_to_dict_roundtrip(self):
        s = Settings(default_difficulty="hard", rng_seed=42)
        s2 = Settings(**s.to_dict())
        assert s2.default_difficulty == "hard"
        assert s2.rng_seed == 42

    def test_absolute_paths_kept(self, tmp_path):
        s = Settings(db_path=str(tmp_path / "x.db"), audio_cache_dir=str(tmp_path / "audio"))
        assert s.db_full_path == tmp_path / "x.db"
        assert s.audio_cache_full_path == tmp_path / "audio"


class TestLoadSaveSettings:
    def test_load_from_file(self, tmp_path):
        config = {"tts_provider": "piper", "leaderboard_size": 25}
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps(config))

        with patch("esl_quiz.config.CONFIG_PATH", config_path):
            s = load_settings()
        assert s.tts_provider == "piper"
        assert s.leaderboard_size == 25
        # Defaults for unspecified fields
        assert s.default_difficulty == "normal"

    def test_load_missing_file(self, tmp_path):
        config_path = tmp_path / "nonexistent.json"
        with patch("esl_quiz.config.CONFIG_PATH", config_path):
            s = load_settings()
        assert s.tts_provider == "edge-tts"

    def test_save_creates_file(self, tmp_path):
        config_path = tmp_path / "config.json"
        with patch("esl_quiz.config.CONFIG_PATH", config_path):
            save_settings(Settings(avoid_repeat_prompt=True))

        data = json.loads(config_path.read_text())
        assert data["avoid_repeat_prompt"] is True

    def test_unknown_keys_ignored(self, tmp_path):
        config = {"tts_voice": "en-GB-SoniaNeural", "unknown_key": "value"}
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps(config))

        with patch("esl_quiz.config.CONFIG_PATH", config_path):
            s = load_settings()
        assert s.tts_voice == "en-GB-SoniaNeural"
        assert not hasattr(s, "unknown_key")
