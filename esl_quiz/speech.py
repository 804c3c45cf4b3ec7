"""Spoken prompts: cached TTS audio and the Speaker capability."""
from __future__ import annotations

import asyncio
import hashlib
import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from esl_quiz.db import Database
    from esl_quiz.providers.base import TTSProvider

log = logging.getLogger("esl_quiz.speech")


def sentence_hash(text: str) -> str:
    return hashlib.sha256(text.encode()).hexdigest()[:16]


async def get_or_create_audio(
    text: str,
    tts: TTSProvider,
    db: Database,
    cache_dir: Path,
) -> Path | None:
    """Get cached audio or generate new TTS audio."""
    cache_dir.mkdir(parents=True, exist_ok=True)
    h = sentence_hash(text)

    cached_path = db.get_audio_cache(h)
    if cached_path:
        p = Path(cached_path)
        if p.exists():
            return p

    output_path = cache_dir / f"{h}.mp3"
    try:
        await tts.synthesize(text, output_path)
        db.set_audio_cache(h, str(output_path), tts.name())
        return output_path
    except Exception as e:
        log.warning("TTS failed for %r: %s", text, e)
        return None


class Speaker:
    """Turns words into playable audio for the browser.

    ``speak`` is fire-and-forget: it schedules synthesis on the running
    loop and returns immediately. ``audio_for`` waits for the audio and
    returns its hash (the file is served as ``/api/audio/<hash>.mp3``).
    """

    def __init__(self, tts: TTSProvider, db: Database, cache_dir: Path):
        self.tts = tts
        self.db = db
        self.cache_dir = cache_dir
        self._tasks: set[asyncio.Task] = set()

    async def audio_for(self, word: str) -> str | None:
        text = word.strip()
        if not text:
            return None
        path = await get_or_create_audio(text, self.tts, self.db, self.cache_dir)
        return sentence_hash(text) if path else None

    def speak(self, word: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.debug("No running loop, not pre-generating audio for %r", word)
            return
        task = loop.create_task(self.audio_for(word))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for scheduled synthesis to finish (used on shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
