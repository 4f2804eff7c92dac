import os
from dataclasses import dataclass, replace

MIN_BOARD_SIZE = 4


class ConfigurationError(ValueError):
    pass


class InvalidBoardSize(ConfigurationError):
    pass


class InvalidWorkerCount(ConfigurationError):
    pass


class InvalidStepDelay(ConfigurationError):
    pass


def default_worker_count(board_size: int) -> int:
    """One worker per CPU, never more than there are first-row columns."""
    return max(1, min(os.cpu_count() or 1, board_size))


def check_step_delay(step_delay_ms: float) -> float:
    if step_delay_ms < 0:
        raise InvalidStepDelay(f"Step delay must be >= 0 ms, got {step_delay_ms}")
    return float(step_delay_ms)


@dataclass(frozen=True, slots=True)
class SearchConfig:
    """Parameters of one search run."""

    board_size: int
    num_workers: int = 1
    step_delay_ms: float = 0.0

    def resolve(self) -> "SearchConfig":
        """
        Validate the configuration and clamp the worker count.
        Raises a ConfigurationError subclass before any worker is built.
        """
        if self.board_size < MIN_BOARD_SIZE:
            raise InvalidBoardSize(
                f"Board size must be at least {MIN_BOARD_SIZE}, got {self.board_size}"
            )
        if self.num_workers < 1:
            raise InvalidWorkerCount(
                f"Number of workers must be at least 1, got {self.num_workers}"
            )
        check_step_delay(self.step_delay_ms)

        # No benefit to more workers than first-row columns.
        return replace(self, num_workers=min(self.num_workers, self.board_size))
