import threading
import time
import weakref
from typing import Callable, List, Optional

from par_queens.config import check_step_delay


class CancelToken:
    """Cooperative stop signal shared by every worker of one run."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._listeners: List[Callable[[], None]] = []

    def cancel(self) -> None:
        """Idempotent; may be called before any worker starts."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            listeners = list(self._listeners)
        for listener in listeners:
            listener()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Sleep up to `timeout` seconds. Returns True as soon as the token is cancelled."""
        return self._event.wait(timeout)

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Call `listener` once on cancel; right away if already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._listeners.append(listener)
                return
        listener()


class StepPacing:
    """
    Delay applied after every PLACE/REMOVE so an observer can follow along.
    One instance is shared by the workers of a run. A new delay also applies
    to pauses already in progress, measured from when each pause began.
    """

    def __init__(self, delay_ms: float = 0.0) -> None:
        self._condition = threading.Condition()
        self._delay_ms = check_step_delay(delay_ms)
        self._tokens: "weakref.WeakSet[CancelToken]" = weakref.WeakSet()

    @property
    def delay_ms(self) -> float:
        with self._condition:
            return self._delay_ms

    def set_delay_ms(self, delay_ms: float) -> None:
        delay_ms = check_step_delay(delay_ms)
        with self._condition:
            self._delay_ms = delay_ms
            self._condition.notify_all()

    def pause(self, cancel: CancelToken) -> bool:
        """Wait out the current delay. Returns True if cancelled meanwhile."""
        with self._condition:
            if self._delay_ms <= 0:
                return cancel.cancelled
            self._watch(cancel)
            started = time.monotonic()
            while not cancel.cancelled:
                remaining = started + self._delay_ms / 1000.0 - time.monotonic()
                if remaining <= 0:
                    return False
                self._condition.wait(remaining)
            return True

    def _watch(self, cancel: CancelToken) -> None:
        # Caller holds the condition.
        if cancel in self._tokens:
            return
        self._tokens.add(cancel)
        cancel.add_listener(self._wake)

    def _wake(self) -> None:
        with self._condition:
            self._condition.notify_all()
