"""Built-in word pool used when a session is started without a word list."""
from __future__ import annotations

from esl_quiz.models import WordEntry

DEFAULT_LIST_ID = "default"
DEFAULT_LIST_TITLE = "Default Sight Words"

SIGHT_WORDS: tuple[WordEntry, ...] = (
    WordEntry("cat", "cat", "animals"),
    WordEntry("dog", "dog", "animals"),
    WordEntry("run", "run", "actions"),
    WordEntry("jump", "jump", "actions"),
    WordEntry("play", "play", "actions"),
    WordEntry("book", "book", "objects"),
    WordEntry("tree", "tree", "nature"),
    WordEntry("ball", "ball", "objects"),
    WordEntry("happy", "happy", "emotions"),
    WordEntry("school", "school", "places"),
)
