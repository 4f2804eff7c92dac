import threading
from typing import Dict, List, Optional, Tuple

from par_queens.events import Solution, StepEvent


class StateAggregator:
    """
    Thread-safe sink shared by all workers of a run.
    Keeps the latest StepEvent per worker (latest wins) and every Solution per
    worker in discovery order. Readers and writers share one condition lock.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._states: Dict[int, StepEvent] = {}
        self._solutions: Dict[int, List[Solution]] = {}
        self._version = 0

    def update_state(self, worker_id: int, event: StepEvent) -> None:
        with self._condition:
            self._states[worker_id] = event  # Overwrite any stale value.
            self._bump()

    def add_solution(self, worker_id: int, solution: Solution) -> None:
        with self._condition:
            self._solutions.setdefault(worker_id, []).append(solution)
            self._bump()

    def get_current_state(self, worker_id: int) -> Optional[StepEvent]:
        with self._condition:
            return self._states.get(worker_id)

    def get_solutions(self, worker_id: int) -> Tuple[Solution, ...]:
        with self._condition:
            return tuple(self._solutions.get(worker_id, ()))

    def get_all_solutions(self) -> List[Solution]:
        """Every stored solution, grouped by worker id, each group in discovery order."""
        with self._condition:
            return [s for wid in sorted(self._solutions) for s in self._solutions[wid]]

    def solution_count(self) -> int:
        with self._condition:
            return sum(len(found) for found in self._solutions.values())

    def worker_ids(self) -> List[int]:
        with self._condition:
            return sorted(set(self._states) | set(self._solutions))

    @property
    def version(self) -> int:
        with self._condition:
            return self._version

    def wait_for_update(self, since: int, timeout: Optional[float] = None) -> int:
        """Block until the version moves past `since` or the timeout expires. Returns the current version."""
        with self._condition:
            self._condition.wait_for(lambda: self._version != since, timeout)
            return self._version

    def reset(self) -> None:
        """Forget everything. Call before reusing the aggregator for another run."""
        with self._condition:
            self._states.clear()
            self._solutions.clear()
            self._bump()

    def _bump(self) -> None:
        self._version += 1
        self._condition.notify_all()
