from dataclasses import dataclass
from enum import Enum
from itertools import combinations
from typing import Tuple

from par_queens.board import Board


class StepAction(Enum):
    PLACE = "place"
    REMOVE = "remove"


@dataclass(frozen=True, slots=True)
class StepEvent:
    """Most recent board mutation of one worker. Latest wins; not a log."""

    worker_id: int
    action: StepAction
    row: int
    col: int
    board: Board
    sequence: int = 0


@dataclass(frozen=True, slots=True)
class Solution:
    """A complete placement found by one worker."""

    worker_id: int
    board: Board

    @property
    def columns(self) -> Tuple[int, ...]:
        return tuple(c for c in self.board.queen_columns() if c is not None)

    def is_valid(self) -> bool:
        """Pairwise check: one queen per row, no shared column or diagonal."""
        queens = self.board.queen_columns()
        if len(queens) != self.board.n or None in queens:
            return False
        if self.board.queen_count() != self.board.n:
            return False
        for (r1, c1), (r2, c2) in combinations(enumerate(queens), 2):
            if c1 == c2 or abs(r1 - r2) == abs(c1 - c2):
                return False
        return True

    def render(self) -> str:
        return self.board.render()
