"""Board simulation core for 2048: grid, slide/merge, spawning and game-over."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

SIZE = 4
SPAWN_VALUES = (2, 4)
SPAWN_PROBS = (0.9, 0.1)


class Direction(IntEnum):
    """Action codes shared with the host layer (0: up, 1: right, 2: down, 3: left)."""

    UP = 0
    RIGHT = 1
    DOWN = 2
    LEFT = 3

    @classmethod
    def parse(cls, value) -> "Direction":
        """Accept a Direction, its int code, or its name (any case)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unsupported direction: {value!r}") from None
        if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            try:
                return cls(int(value))
            except ValueError:
                raise ValueError(f"Unsupported direction: {value!r}") from None
        raise ValueError(f"Unsupported direction: {value!r}")


# Each line is walked from the edge the tiles slide towards: (start cell, step).
_LINE_WALKS: Dict[Direction, Tuple[List[Tuple[int, int]], Tuple[int, int]]] = {
    Direction.UP: ([(0, c) for c in range(SIZE)], (1, 0)),
    Direction.DOWN: ([(SIZE - 1, c) for c in range(SIZE)], (-1, 0)),
    Direction.LEFT: ([(r, 0) for r in range(SIZE)], (0, 1)),
    Direction.RIGHT: ([(r, SIZE - 1) for r in range(SIZE)], (0, -1)),
}


def _build_traversals() -> Dict[Direction, List[Tuple[np.ndarray, np.ndarray]]]:
    traversals = {}
    for direction, (starts, (dr, dc)) in _LINE_WALKS.items():
        lines = []
        for r0, c0 in starts:
            rows = np.array([r0 + k * dr for k in range(SIZE)])
            cols = np.array([c0 + k * dc for k in range(SIZE)])
            lines.append((rows, cols))
        traversals[direction] = lines
    return traversals


TRAVERSALS = _build_traversals()


def compress(line: Sequence[int]) -> List[int]:
    """Slide the non-zero values of a line to the front, keeping their order."""
    new_line = [int(v) for v in line if v != 0]
    new_line += [0] * (SIZE - len(new_line))
    return new_line


def merge(line: Sequence[int]) -> Tuple[List[int], int]:
    """Merge equal neighbours of a compressed line once, left to right.

    Returns the merged line (consumed tiles left as 0) and the points gained.
    """
    merged = list(line)
    gained = 0
    for j in range(len(merged) - 1):
        if merged[j] != 0 and merged[j] == merged[j + 1]:
            merged[j] *= 2
            merged[j + 1] = 0
            gained += merged[j]
    return merged, gained


def slide_line(line: Sequence[int]) -> Tuple[List[int], int]:
    """Apply one leftward move to a single line."""
    merged, gained = merge(compress(line))
    return compress(merged), gained


def _validate_board(board: np.ndarray) -> None:
    if board.shape != (SIZE, SIZE):
        raise ValueError(f"Board must be {SIZE}x{SIZE}, got shape {board.shape}")
    if board.dtype.kind not in "iu":
        raise ValueError(f"Board values must be integers, got dtype {board.dtype}")
    tiles = board[board != 0]
    if (tiles < 2).any() or (tiles & (tiles - 1)).any():
        raise ValueError("Board values must be 0 or a power of two >= 2")


@dataclass(frozen=True)
class Snapshot:
    """Plain-Python copy of the engine state for renderers and JSON."""

    board: List[List[int]]
    score: int
    game_over: bool
    max_tile: int

    def to_dict(self) -> dict:
        return asdict(self)


class BoardEngine:
    """Owns the 4x4 board and the score.

    ``rng`` is the only source of randomness (tile spawning); pass a seeded
    ``numpy.random.Generator`` for reproducible games. With ``start=False``
    the engine begins on an empty board instead of a freshly dealt one.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None, *, start: bool = True):
        self.rng = rng if rng is not None else np.random.default_rng()
        self._board = np.zeros((SIZE, SIZE), dtype=int)
        self._score = 0
        if start:
            self.reset()

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Sequence[int]],
        rng: Optional[np.random.Generator] = None,
        score: int = 0,
    ) -> "BoardEngine":
        """Build an engine on an explicit board, e.g. a position under test."""
        board = np.array(rows)
        _validate_board(board)
        if score < 0:
            raise ValueError(f"Score must be non-negative, got {score}")
        engine = cls(rng=rng, start=False)
        engine._board = board.astype(int)
        engine._score = int(score)
        return engine

    @property
    def board(self) -> np.ndarray:
        """Read-only view of the board."""
        view = self._board.view()
        view.flags.writeable = False
        return view

    @property
    def score(self) -> int:
        return self._score

    def reset(self) -> None:
        """Reset the game board."""
        self._board = np.zeros((SIZE, SIZE), dtype=int)
        self._score = 0
        self.spawn_tile()
        self.spawn_tile()
        logger.debug("New game started")

    def get_cell(self, row: int, col: int) -> int:
        if not (0 <= row < SIZE and 0 <= col < SIZE):
            raise IndexError(f"Cell ({row}, {col}) is outside the {SIZE}x{SIZE} board")
        return int(self._board[row, col])

    def get_score(self) -> int:
        return self.score

    def max_tile(self) -> int:
        return int(self._board.max())

    def spawn_tile(self) -> None:
        """Add a 2 (90%) or 4 (10%) to a random empty cell; no-op on a full board."""
        empty_cells = np.argwhere(self._board == 0)
        if len(empty_cells) == 0:
            return
        y, x = empty_cells[self.rng.integers(len(empty_cells))]
        self._board[y, x] = self.rng.choice(SPAWN_VALUES, p=SPAWN_PROBS)

    def is_terminal(self) -> bool:
        """True when the board is full and no row or column has an equal neighbour pair."""
        board = self._board
        if (board == 0).any():
            return False
        if (board[:, :-1] == board[:, 1:]).any():
            return False
        if (board[:-1, :] == board[1:, :]).any():
            return False
        return True

    @staticmethod
    def _apply(board: np.ndarray, direction: Direction) -> Tuple[int, bool]:
        """Slide every line of ``board`` in place; return (points gained, changed)."""
        gained = 0
        changed = False
        for rows, cols in TRAVERSALS[direction]:
            line = board[rows, cols].tolist()
            new_line, points = slide_line(line)
            if new_line != line:
                board[rows, cols] = new_line
                changed = True
            gained += points
        return gained, changed

    def move(self, direction) -> bool:
        """Slide the board in ``direction``; return whether any cell changed."""
        direction = Direction.parse(direction)
        if self.is_terminal():
            return False
        gained, changed = self._apply(self._board, direction)
        self._score += gained
        return changed

    def peek_move(self, direction) -> Tuple[np.ndarray, int, bool]:
        """Return the resulting board and score delta if a move were applied."""
        direction = Direction.parse(direction)
        preview = self._board.copy()
        if self.is_terminal():
            return preview, 0, False
        gained, changed = self._apply(preview, direction)
        return preview, gained, changed

    def get_available_moves(self) -> List[Direction]:
        """Return the directions that would change the board."""
        return [direction for direction in Direction if self.peek_move(direction)[2]]

    def step(self, direction) -> Tuple[np.ndarray, int, bool]:
        """Move, spawn a tile if the board changed, then check for game over."""
        moved = self.move(direction)
        if moved:
            self.spawn_tile()
        game_over = self.is_terminal()
        if moved and game_over:
            logger.info("Game over! score=%d max_tile=%d", self.score, self.max_tile())
        return self.board, self.score, game_over

    def snapshot(self) -> Snapshot:
        return Snapshot(
            board=[[int(cell) for cell in row] for row in self._board.tolist()],
            score=int(self.score),
            game_over=self.is_terminal(),
            max_tile=self.max_tile(),
        )
