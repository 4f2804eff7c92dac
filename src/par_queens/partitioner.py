import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import structlog

from par_queens.aggregator import StateAggregator
from par_queens.board import Board
from par_queens.config import SearchConfig
from par_queens.control import CancelToken, StepPacing
from par_queens.events import Solution, StepEvent
from par_queens.solver import SearchOutcome, Sink, Solver

log = structlog.get_logger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_STATES = frozenset({WorkerState.COMPLETED, WorkerState.CANCELLED, WorkerState.FAILED})


@dataclass(frozen=True, slots=True)
class WorkerResult:
    worker_id: int
    columns: range
    outcome: SearchOutcome
    solutions: Tuple[Solution, ...] = ()
    steps: int = 0


@dataclass(slots=True)
class Worker:
    id: int
    columns: range
    state: WorkerState = WorkerState.IDLE
    result: Optional[WorkerResult] = field(default=None, repr=False)


def partition_columns(n: int, num_workers: int) -> List[range]:
    """
    Split the first-row columns [0, n) into `num_workers` contiguous ranges.
    The first n % num_workers ranges get one extra column.
    """
    base, remainder = divmod(n, num_workers)
    ranges = []
    start = 0
    for i in range(num_workers):
        end = start + base + (1 if i < remainder else 0)
        ranges.append(range(start, end))
        start = end
    return ranges


def run_worker(
    worker_id: int,
    n: int,
    columns: range,
    sink: Optional[Sink],
    cancel: CancelToken,
    pacing: Optional[StepPacing] = None,
) -> WorkerResult:
    """Search every placement whose first-row queen falls in `columns`."""
    solutions: List[Solution] = []
    steps = 0
    outcome = SearchOutcome.EXHAUSTED

    for col in columns:
        if cancel.cancelled:
            outcome = SearchOutcome.CANCELLED
            break

        board = Board.with_first_queen(n, col)
        solver = Solver(
            board, worker_id, sink=sink, cancel=cancel, pacing=pacing, step_offset=steps
        )
        outcome = solver.run(start_row=1)
        solutions.extend(solver.solutions)
        steps += solver.steps
        if outcome is SearchOutcome.CANCELLED:
            break

    return WorkerResult(
        worker_id=worker_id,
        columns=columns,
        outcome=outcome,
        solutions=tuple(solutions),
        steps=steps,
    )


class SearchHandle:
    """A running (or finished) search. Built by `start`; never restarted."""

    def __init__(self, config: SearchConfig, sink: Optional[StateAggregator] = None):
        self.config = config
        self.sink = sink if sink is not None else StateAggregator()
        self.cancel = CancelToken()
        self.pacing = StepPacing(config.step_delay_ms)
        self.workers = [
            Worker(id=i, columns=columns)
            for i, columns in enumerate(partition_columns(config.board_size, config.num_workers))
        ]
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._futures: List[Future] = []

    def _launch(self) -> None:
        log.info(
            "search_started",
            board_size=self.config.board_size,
            workers=len(self.workers),
            step_delay_ms=self.config.step_delay_ms,
        )
        self._executor = ThreadPoolExecutor(
            max_workers=len(self.workers), thread_name_prefix="queens-worker"
        )
        self._futures = [self._executor.submit(self._run, worker) for worker in self.workers]
        # Threads finish on their own; this only releases the pool once they have.
        self._executor.shutdown(wait=False)

    def _run(self, worker: Worker) -> WorkerResult:
        self._set_state(worker, WorkerState.RUNNING)
        log.debug("worker_started", worker_id=worker.id, columns=(worker.columns.start, worker.columns.stop))
        try:
            result = run_worker(
                worker.id,
                self.config.board_size,
                worker.columns,
                self.sink,
                self.cancel,
                self.pacing,
            )
        except Exception:
            log.exception("worker_failed", worker_id=worker.id)
            self._set_state(worker, WorkerState.FAILED)
            raise

        worker.result = result
        if result.outcome is SearchOutcome.CANCELLED:
            self._set_state(worker, WorkerState.CANCELLED)
        else:
            self._set_state(worker, WorkerState.COMPLETED)
        log.info(
            "worker_finished",
            worker_id=worker.id,
            outcome=result.outcome.value,
            solutions=len(result.solutions),
            steps=result.steps,
        )
        return result

    def _set_state(self, worker: Worker, state: WorkerState) -> None:
        with self._lock:
            worker.state = state

    def worker_states(self) -> List[WorkerState]:
        with self._lock:
            return [w.state for w in self.workers]

    def request_stop(self) -> None:
        """Ask every worker to stop at its next check. Idempotent."""
        if not self.cancel.cancelled:
            log.info("stop_requested", board_size=self.config.board_size)
        self.cancel.cancel()

    def is_running(self) -> bool:
        return any(state not in TERMINAL_STATES for state in self.worker_states())

    def wait_for_completion(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every worker is terminal. Returns False if `timeout` expired first.
        Re-raises the first error a worker failed with.
        """
        done, not_done = wait(self._futures, timeout=timeout)
        if not_done:
            return False
        for future in self._futures:
            future.result()
        return True

    def results(self) -> List[WorkerResult]:
        """Per-worker results of a finished run."""
        if self.is_running():
            raise RuntimeError("Search is still running")
        return [w.result for w in self.workers if w.result is not None]

    def poll_state(self, worker_id: int) -> Optional[StepEvent]:
        return self.sink.get_current_state(worker_id)

    def poll_solutions(self, worker_id: int) -> Tuple[Solution, ...]:
        return tuple(self.sink.get_solutions(worker_id))

    def solution_count(self) -> int:
        return self.sink.solution_count()

    def set_step_delay(self, delay_ms: float) -> None:
        self.pacing.set_delay_ms(delay_ms)


def start(
    n: int,
    num_workers: int,
    sink: Optional[StateAggregator] = None,
    *,
    step_delay_ms: float = 0.0,
) -> SearchHandle:
    """
    Validate, partition and launch a search.
    Raises InvalidBoardSize / InvalidWorkerCount / InvalidStepDelay before any
    worker starts. `sink` defaults to a fresh StateAggregator; a reused sink
    must be reset by the caller.
    """
    config = SearchConfig(n, num_workers, step_delay_ms).resolve()
    handle = SearchHandle(config, sink)
    handle._launch()
    return handle
