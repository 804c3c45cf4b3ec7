"""Quiz session state machine: prompts, options, scoring and difficulty modes.

Modes:
  normal: the prompt plus up to three distractors, shuffled
  easy:   a single displayed candidate; the player answers yes or no
  hard:   no options; the player spells the word

Nothing here does I/O. Every random choice is drawn from the injected
``random.Random`` so a seeded generator reproduces a session exactly.
"""
from __future__ import annotations

import random
from collections.abc import Iterable
from dataclasses import dataclass, field

from esl_quiz.models import DIFFICULTIES, EASY, HARD, NORMAL, QuizStats, WordEntry
from esl_quiz.sight_words import DEFAULT_LIST_ID, DEFAULT_LIST_TITLE, SIGHT_WORDS

OPTIONS_COUNT = 4
CORRECT_FEEDBACK = "Great job! 🎉"
LISTEN_INSTRUCTIONS = "Listen carefully and click the word you hear!"

# Posted in easy mode when the player says the displayed word is NOT the one spoken.
MISMATCH_TOKEN = "<mismatch>"


def incorrect_feedback(word: str) -> str:
    return f'Try again! The word was "{word}"'


def normalize(text: str) -> str:
    return text.strip().casefold()


def calculate_percentage(score: int, total: int) -> int:
    """Whole-number percentage, halves rounded up; 0 when nothing was answered."""
    if total <= 0:
        return 0
    return (200 * score + total) // (2 * total)


def minimum_pool_size(difficulty: str) -> int:
    return 1 if difficulty == HARD else OPTIONS_COUNT


def unique_words(pool: Iterable[WordEntry]) -> list[WordEntry]:
    """Drop entries whose normalized word was already seen, keeping order."""
    seen: set[str] = set()
    words: list[WordEntry] = []
    for entry in pool:
        key = normalize(entry.word)
        if not key or key in seen:
            continue
        seen.add(key)
        words.append(entry)
    return words


class SessionNotStarted(RuntimeError):
    """An operation that needs an active session was called before start()."""


@dataclass
class InvalidPool:
    """Returned by start() when the pool cannot support the requested mode."""

    difficulty: str
    pool_size: int
    required: int

    @property
    def message(self) -> str:
        if self.pool_size == 0:
            return "This word list has no words to practice."
        return (
            f"{self.difficulty.capitalize()} mode needs at least {self.required} "
            f"different words, but this list only has {self.pool_size}."
        )


@dataclass
class QuizSession:
    active_word_pool: list[WordEntry] = field(default_factory=list)
    current_prompt: WordEntry | None = None
    current_options: list[WordEntry] = field(default_factory=list)
    difficulty: str = NORMAL
    score: int = 0
    answered_count: int = 0
    last_feedback: str = ""
    started: bool = False
    word_list_id: str | None = None
    word_list_title: str | None = None

    @property
    def displayed_candidate(self) -> WordEntry | None:
        """The single word shown in easy mode."""
        if self.difficulty == EASY and self.current_options:
            return self.current_options[0]
        return None


@dataclass
class AnswerResult:
    correct: bool
    session: QuizSession


class QuizEngine:
    """Owns one player's QuizSession and applies start/answer/next/reset to it."""

    def __init__(
        self,
        rng: random.Random | None = None,
        default_pool: Iterable[WordEntry] = SIGHT_WORDS,
        match_probability: float = 0.5,
        avoid_repeat: bool = False,
    ):
        if not 0.0 <= match_probability <= 1.0:
            raise ValueError(f"match_probability must be within [0, 1], got {match_probability}")
        self.rng = rng if rng is not None else random.Random()
        self.default_pool = list(default_pool)
        self.match_probability = match_probability
        self.avoid_repeat = avoid_repeat
        self.session = QuizSession()

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def start(
        self,
        pool: Iterable[WordEntry] | None = None,
        difficulty: str = NORMAL,
        word_list_id: str | None = None,
        word_list_title: str | None = None,
    ) -> QuizSession | InvalidPool:
        """Begin a new session, or return InvalidPool and leave the engine untouched."""
        if difficulty not in DIFFICULTIES:
            raise ValueError(f"Unknown difficulty: {difficulty}")
        if pool is None:
            pool = self.default_pool
            word_list_id = word_list_id or DEFAULT_LIST_ID
            word_list_title = word_list_title or DEFAULT_LIST_TITLE

        words = unique_words(pool)
        required = minimum_pool_size(difficulty)
        if len(words) < required:
            return InvalidPool(difficulty=difficulty, pool_size=len(words), required=required)

        self.session = QuizSession(
            active_word_pool=words,
            difficulty=difficulty,
            started=True,
            word_list_id=word_list_id,
            word_list_title=word_list_title,
        )
        self.next_prompt()
        return self.session

    def reset(self) -> None:
        self.session = QuizSession()

    # ── Rounds ────────────────────────────────────────────────────────────

    def next_prompt(self) -> WordEntry:
        session = self._require_started()
        pool = session.active_word_pool

        candidates = pool
        if self.avoid_repeat and session.current_prompt is not None and len(pool) > 1:
            candidates = [w for w in pool if w != session.current_prompt]
        prompt = self.rng.choice(candidates)
        others = [w for w in pool if w != prompt]

        if session.difficulty == NORMAL:
            distractors = self.rng.sample(others, min(OPTIONS_COUNT - 1, len(others)))
            options = [prompt, *distractors]
            self.rng.shuffle(options)
        elif session.difficulty == EASY:
            if not others or self.rng.random() < self.match_probability:
                options = [prompt]
            else:
                options = [self.rng.choice(others)]
        else:
            options = []

        session.current_prompt = prompt
        session.current_options = options
        session.last_feedback = ""
        return prompt

    def answer(self, submitted: str) -> AnswerResult:
        """Score one answer. Does not advance to the next prompt."""
        session = self._require_started()
        prompt = session.current_prompt
        if prompt is None:
            raise SessionNotStarted("No prompt has been drawn yet")

        given = normalize(submitted)
        if session.difficulty == EASY and given == normalize(MISMATCH_TOKEN):
            candidate = session.displayed_candidate
            correct = candidate is not None and candidate != prompt
        else:
            correct = given == normalize(prompt.word)

        session.answered_count += 1
        if correct:
            session.score += 1
            session.last_feedback = CORRECT_FEEDBACK
        else:
            session.last_feedback = incorrect_feedback(prompt.word)
        return AnswerResult(correct=correct, session=session)

    def answer_yes_no(self, accept: bool) -> AnswerResult:
        """Easy mode: ``accept`` means "the displayed word is the one I heard"."""
        session = self._require_started()
        if session.difficulty != EASY:
            raise ValueError(f"Yes/no answers only apply to easy mode, not {session.difficulty}")
        candidate = session.displayed_candidate
        if candidate is None:
            raise SessionNotStarted("No word is being shown yet")
        return self.answer(candidate.word if accept else MISMATCH_TOKEN)

    # ── Derived reads ─────────────────────────────────────────────────────

    def stats(self) -> QuizStats:
        s = self.session
        return QuizStats(
            score=s.score,
            total=s.answered_count,
            percentage=calculate_percentage(s.score, s.answered_count),
        )

    def game_data(self) -> dict:
        """The per-session record handed to persistence when a game ends."""
        s = self.session
        return {
            "word_list_id": s.word_list_id or DEFAULT_LIST_ID,
            "word_list_title": s.word_list_title or DEFAULT_LIST_TITLE,
            "difficulty": s.difficulty,
            "score": s.score,
            "total_questions": s.answered_count,
            "percentage": calculate_percentage(s.score, s.answered_count),
        }

    def _require_started(self) -> QuizSession:
        if not self.session.started:
            raise SessionNotStarted("Call start() before playing a round")
        return self.session
