"""Classroom tic-tac-toe spelling game for two teams.

Each of the nine squares hides a word. The team whose turn it is picks a
square and hears the word, the students spell it on paper, and the
teacher marks the attempt right or wrong. A right answer claims the
square; three in a row wins the board and a bonus.
"""
from __future__ import annotations

import random
from collections.abc import Iterable
from dataclasses import dataclass, field

from esl_quiz.models import WordEntry
from esl_quiz.quiz import InvalidPool, SessionNotStarted, unique_words
from esl_quiz.sight_words import DEFAULT_LIST_ID, DEFAULT_LIST_TITLE, SIGHT_WORDS

TEAM_X = "X"
TEAM_O = "O"
DRAW = "Draw"
MODE = "tic-tac-toe"

GRID_CELLS = 9
CORRECT_POINTS = 1
WIN_BONUS = 10

LINES = (
    (0, 1, 2), (3, 4, 5), (6, 7, 8),  # rows
    (0, 3, 6), (1, 4, 7), (2, 5, 8),  # columns
    (0, 4, 8), (2, 4, 6),  # diagonals
)


def other_team(team: str) -> str:
    return TEAM_O if team == TEAM_X else TEAM_X


@dataclass
class Cell:
    id: int
    word: WordEntry
    state: str | None = None  # None, TEAM_X or TEAM_O
    attempted: bool = False

    def to_dict(self) -> dict:
        """Open squares show only the word length."""
        return {
            "id": self.id,
            "state": self.state,
            "attempted": self.attempted,
            "length": len(self.word.word),
            "word": self.word.word if self.state else None,
        }


def winning_team(grid: list[Cell]) -> str | None:
    for a, b, c in LINES:
        team = grid[a].state
        if team and team == grid[b].state == grid[c].state:
            return team
    return None


@dataclass
class MarkResult:
    correct: bool
    cell: Cell
    winner: str | None


@dataclass
class TicTacToeGame:
    rng: random.Random = field(default_factory=random.Random)
    pool: list[WordEntry] = field(default_factory=list)
    grid: list[Cell] = field(default_factory=list)
    current_team: str = TEAM_X
    selected: int | None = None
    scores: dict[str, int] = field(default_factory=lambda: {TEAM_X: 0, TEAM_O: 0})
    winner: str | None = None
    word_list_id: str | None = None
    word_list_title: str | None = None

    @property
    def game_over(self) -> bool:
        return self.winner is not None

    def start(
        self,
        pool: Iterable[WordEntry] | None = None,
        word_list_id: str | None = None,
        word_list_title: str | None = None,
    ) -> TicTacToeGame | InvalidPool:
        """Deal a fresh board with both scores at zero."""
        if pool is None:
            pool = SIGHT_WORDS
            word_list_id = word_list_id or DEFAULT_LIST_ID
            word_list_title = word_list_title or DEFAULT_LIST_TITLE
        words = unique_words(pool)
        if not words:
            return InvalidPool(difficulty=MODE, pool_size=0, required=1)

        self.pool = words
        self.word_list_id = word_list_id
        self.word_list_title = word_list_title
        self.new_round()
        return self

    def new_board(self) -> None:
        """Play again: new words on the board, scores carried over."""
        if not self.pool:
            raise SessionNotStarted("Call start() before dealing a board")
        words = self.rng.sample(self.pool, min(GRID_CELLS, len(self.pool)))
        # Small lists repeat words to fill the board
        while len(words) < GRID_CELLS:
            words.append(self.rng.choice(self.pool))
        self.grid = [Cell(id=i, word=w) for i, w in enumerate(words)]
        self.current_team = TEAM_X
        self.selected = None
        self.winner = None

    def new_round(self) -> None:
        """New board and both scores back to zero."""
        self.scores = {TEAM_X: 0, TEAM_O: 0}
        self.new_board()

    def select(self, cell_id: int) -> Cell:
        """Pick an open square for the current team; its word is the one to spell."""
        self._require_board()
        if self.game_over:
            raise ValueError("The board is finished; start a new one")
        if not 0 <= cell_id < len(self.grid):
            raise ValueError(f"No square {cell_id}")
        cell = self.grid[cell_id]
        if cell.state is not None:
            raise ValueError(f"Square {cell_id} is already taken by team {cell.state}")
        self.selected = cell_id
        return cell

    def mark(self, correct: bool) -> MarkResult:
        """Record the teacher's verdict on the selected square."""
        self._require_board()
        if self.selected is None:
            raise ValueError("Select a square first")
        cell = self.grid[self.selected]
        self.selected = None
        cell.attempted = True
        team = self.current_team

        if not correct:
            self.current_team = other_team(team)
            return MarkResult(correct=False, cell=cell, winner=None)

        cell.state = team
        self.scores[team] += CORRECT_POINTS
        line_winner = winning_team(self.grid)
        if line_winner:
            self.winner = line_winner
            self.scores[line_winner] += WIN_BONUS
        elif all(c.state is not None for c in self.grid):
            self.winner = DRAW
        else:
            self.current_team = other_team(team)
        return MarkResult(correct=True, cell=cell, winner=self.winner)

    def to_dict(self) -> dict:
        selected = self.grid[self.selected] if self.selected is not None else None
        return {
            "word_list_id": self.word_list_id,
            "word_list_title": self.word_list_title,
            "grid": [c.to_dict() for c in self.grid],
            "current_team": self.current_team,
            "selected": self.selected,
            "selected_length": len(selected.word.word) if selected else None,
            "scores": dict(self.scores),
            "winner": self.winner,
            "game_over": self.game_over,
        }

    def _require_board(self) -> None:
        if not self.grid:
            raise SessionNotStarted("Call start() before playing")
