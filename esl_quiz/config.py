from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "tts_provider": "edge-tts",
    "tts_voice": "en-US-AnaNeural",
    "tts_rate": "-20%",
    "db_path": "esl_quiz.db",
    "audio_cache_dir": "audio_cache",
    "default_difficulty": "normal",
    "easy_match_probability": 0.5,
    "avoid_repeat_prompt": False,
    "leaderboard_size": 10,
    "feedback_duration_ms": 3000,
    "rng_seed": None,
}


@dataclass
class Settings:
    tts_provider: str = DEFAULTS["tts_provider"]
    tts_voice: str = DEFAULTS["tts_voice"]
    tts_rate: str = DEFAULTS["tts_rate"]
    db_path: str = DEFAULTS["db_path"]
    audio_cache_dir: str = DEFAULTS["audio_cache_dir"]
    default_difficulty: str = DEFAULTS["default_difficulty"]
    easy_match_probability: float = DEFAULTS["easy_match_probability"]
    avoid_repeat_prompt: bool = DEFAULTS["avoid_repeat_prompt"]
    leaderboard_size: int = DEFAULTS["leaderboard_size"]
    feedback_duration_ms: int = DEFAULTS["feedback_duration_ms"]
    rng_seed: int | None = DEFAULTS["rng_seed"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def db_full_path(self) -> Path:
        return self.project_root / self.db_path

    @property
    def audio_cache_full_path(self) -> Path:
        return self.project_root / self.audio_cache_dir

    def to_dict(self) -> dict:
        return {
            "tts_provider": self.tts_provider,
            "tts_voice": self.tts_voice,
            "tts_rate": self.tts_rate,
            "db_path": self.db_path,
            "audio_cache_dir": self.audio_cache_dir,
            "default_difficulty": self.default_difficulty,
            "easy_match_probability": self.easy_match_probability,
            "avoid_repeat_prompt": self.avoid_repeat_prompt,
            "leaderboard_size": self.leaderboard_size,
            "feedback_duration_ms": self.feedback_duration_ms,
            "rng_seed": self.rng_seed,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
