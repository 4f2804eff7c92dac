from enum import Enum
from typing import List, Optional, Protocol

from par_queens.board import Board
from par_queens.control import CancelToken, StepPacing
from par_queens.events import Solution, StepAction, StepEvent


class Sink(Protocol):
    """Receives progress and solutions from solvers. Implementations must be thread-safe."""

    def update_state(self, worker_id: int, event: StepEvent) -> None: ...

    def add_solution(self, worker_id: int, solution: Solution) -> None: ...


class SearchOutcome(Enum):
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class SolverState(Enum):
    NOT_STARTED = "not_started"
    SEARCHING = "searching"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class Solver:
    """
    Depth-first backtracking search over one privately owned Board.

    Every solution below the starting row is enumerated; finding one never
    ends the search. A stop observed on the cancel token unwinds the
    recursion with SearchOutcome.CANCELLED and keeps what was already found.
    """

    def __init__(
        self,
        board: Board,
        worker_id: int = 0,
        *,
        sink: Optional[Sink] = None,
        cancel: Optional[CancelToken] = None,
        pacing: Optional[StepPacing] = None,
        step_offset: int = 0,
    ):
        self.board = board
        self.worker_id = worker_id
        self.sink = sink
        self.cancel = cancel or CancelToken()
        self.pacing = pacing
        self.state = SolverState.NOT_STARTED
        self.solutions: List[Solution] = []
        self.steps = 0
        self.step_offset = step_offset  # keeps sequence numbers monotonic across a worker's boards

    def run(self, start_row: int = 0) -> SearchOutcome:
        """Search once from `start_row` and record the terminal state."""
        if self.state is not SolverState.NOT_STARTED:
            raise RuntimeError(f"Solver already ran (state={self.state.value})")

        self.state = SolverState.SEARCHING
        outcome = self.search_from_row(start_row)
        if outcome is SearchOutcome.CANCELLED:
            self.state = SolverState.CANCELLED
        else:
            self.state = SolverState.EXHAUSTED
        return outcome

    def solve(self) -> List[Solution]:
        """Enumerate every solution of the (empty) board on the calling thread."""
        self.run(0)
        return self.solutions

    def search_from_row(self, row: int) -> SearchOutcome:
        n = self.board.n
        if row == n:
            self._record_solution()
            return SearchOutcome.EXHAUSTED

        for col in range(n):
            if self.cancel.cancelled:
                return SearchOutcome.CANCELLED
            if not self.board.is_safe(row, col):
                continue

            self.board.place(row, col)
            if self._step(StepAction.PLACE, row, col):
                return SearchOutcome.CANCELLED

            if self.search_from_row(row + 1) is SearchOutcome.CANCELLED:
                return SearchOutcome.CANCELLED

            self.board.remove(row, col)
            if self._step(StepAction.REMOVE, row, col):
                return SearchOutcome.CANCELLED

        return SearchOutcome.EXHAUSTED

    def _record_solution(self) -> None:
        solution = Solution(worker_id=self.worker_id, board=self.board.snapshot())
        self.solutions.append(solution)
        if self.sink is not None:
            self.sink.add_solution(self.worker_id, solution)

    def _step(self, action: StepAction, row: int, col: int) -> bool:
        """Publish one mutation and pace. Returns True if a stop was observed."""
        self.steps += 1
        if self.sink is not None:
            event = StepEvent(
                worker_id=self.worker_id,
                action=action,
                row=row,
                col=col,
                board=self.board.snapshot(),
                sequence=self.step_offset + self.steps,
            )
            self.sink.update_state(self.worker_id, event)

        if self.pacing is None:
            return False
        return self.pacing.pause(self.cancel)
