"""Function-style surface for hosts (CLI, GUIs, test harnesses)."""
import threading
import weakref
from typing import Optional, Tuple

from par_queens import partitioner
from par_queens.aggregator import StateAggregator
from par_queens.config import check_step_delay
from par_queens.events import Solution, StepEvent
from par_queens.partitioner import SearchHandle


__all__ = [
    "start",
    "request_stop",
    "wait_for_completion",
    "is_running",
    "poll_state",
    "poll_solutions",
    "set_step_delay",
    "get_step_delay",
    "SearchHandle",
    "StateAggregator",
]

# Default pause for searches started here. Read once per `start` and handed to
# the new run's own StepPacing; solvers never read it directly.
_lock = threading.Lock()
_step_delay_ms = 0.0
_handles: "weakref.WeakSet[SearchHandle]" = weakref.WeakSet()


def start(
    n: int,
    num_workers: int,
    sink: Optional[StateAggregator] = None,
    *,
    step_delay_ms: Optional[float] = None,
) -> SearchHandle:
    """Like `partitioner.start`, with the delay defaulting to the last `set_step_delay`."""
    with _lock:
        if step_delay_ms is None:
            step_delay_ms = _step_delay_ms
        handle = partitioner.start(n, num_workers, sink, step_delay_ms=step_delay_ms)
        _handles.add(handle)
    return handle


def set_step_delay(delay_ms: float) -> None:
    """Set the pause after each placement/removal for running and future searches."""
    delay_ms = check_step_delay(delay_ms)
    global _step_delay_ms
    with _lock:
        _step_delay_ms = delay_ms
        running = [h for h in _handles if h.is_running()]
    for handle in running:
        handle.set_step_delay(delay_ms)


def get_step_delay() -> float:
    with _lock:
        return _step_delay_ms


def request_stop(handle: SearchHandle) -> None:
    handle.request_stop()


def wait_for_completion(handle: SearchHandle, timeout: Optional[float] = None) -> bool:
    return handle.wait_for_completion(timeout)


def is_running(handle: SearchHandle) -> bool:
    return handle.is_running()


def poll_state(handle: SearchHandle, worker_id: int) -> Optional[StepEvent]:
    return handle.poll_state(worker_id)


def poll_solutions(handle: SearchHandle, worker_id: int) -> Tuple[Solution, ...]:
    return handle.poll_solutions(worker_id)
