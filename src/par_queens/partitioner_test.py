import time

import pytest
from par_queens import api
from par_queens.aggregator import StateAggregator
from par_queens.config import (
    ConfigurationError,
    InvalidBoardSize,
    InvalidStepDelay,
    InvalidWorkerCount,
)
from par_queens.control import CancelToken
from par_queens.partitioner import (
    WorkerState,
    partition_columns,
    run_worker,
    start,
)
from par_queens.solver import SearchOutcome


def wait_until(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class TestPartitionColumns:
    """Test suite for partition_columns"""

    @pytest.mark.parametrize("n", range(4, 14))
    def test_complete_and_balanced(self, n):
        """Test ranges cover [0, n) once, contiguously, with skew <= 1"""
        for workers in range(1, n + 1):
            ranges = partition_columns(n, workers)
            assert len(ranges) == workers
            assert [c for r in ranges for c in r] == list(range(n))
            sizes = [len(r) for r in ranges]
            assert max(sizes) - min(sizes) <= 1
            assert sizes == sorted(sizes, reverse=True)

    def test_remainder_goes_first(self):
        """Test the first n % w workers get the extra column"""
        assert partition_columns(8, 3) == [range(0, 3), range(3, 6), range(6, 8)]
        assert partition_columns(5, 5) == [range(i, i + 1) for i in range(5)]


class TestRunWorker:
    """Test suite for run_worker"""

    def test_whole_board(self):
        """Test one worker over every column finds every solution"""
        result = run_worker(0, 6, range(6), None, CancelToken())
        assert result.outcome is SearchOutcome.EXHAUSTED
        assert len(result.solutions) == 4
        assert result.steps > 0

    def test_columns_restrict_first_row(self):
        """Test solutions only use the assigned first-row columns"""
        result = run_worker(2, 8, range(2, 4), None, CancelToken())
        assert result.solutions
        assert {s.columns[0] for s in result.solutions} == {2, 3}
        assert all(s.worker_id == 2 for s in result.solutions)

    def test_pre_cancelled(self):
        """Test a cancelled token skips every column"""
        cancel = CancelToken()
        cancel.cancel()
        result = run_worker(0, 8, range(8), StateAggregator(), cancel)
        assert result.outcome is SearchOutcome.CANCELLED
        assert result.solutions == ()
        assert result.steps == 0

    def test_sequence_is_monotonic_across_columns(self):
        """Test step sequence numbers keep growing from board to board"""
        sink = StateAggregator()
        result = run_worker(0, 5, range(5), sink, CancelToken())
        assert sink.get_current_state(0).sequence == result.steps


class TestStart:
    """Test suite for start and SearchHandle"""

    @pytest.mark.parametrize(
        "n,workers,error",
        [
            (3, 1, InvalidBoardSize),
            (0, 1, InvalidBoardSize),
            (8, 0, InvalidWorkerCount),
            (8, -2, InvalidWorkerCount),
        ],
    )
    def test_configuration_errors(self, n, workers, error):
        """Test invalid sizes and worker counts are rejected synchronously"""
        with pytest.raises(error):
            start(n, workers)
        assert issubclass(error, ConfigurationError)

    def test_negative_delay_rejected(self):
        """Test a negative pacing delay is rejected"""
        with pytest.raises(InvalidStepDelay):
            start(6, 2, step_delay_ms=-1)

    def test_workers_clamped_to_board_size(self):
        """Test more workers than columns are clamped"""
        handle = start(5, 12)
        assert handle.wait_for_completion(timeout=10)
        assert len(handle.workers) == 5
        assert handle.config.num_workers == 5
        assert handle.solution_count() == 10

    @pytest.mark.parametrize("n,expected", [(4, 2), (5, 10), (6, 4), (8, 92)])
    def test_counts_independent_of_worker_count(self, n, expected):
        """Test the total does not depend on how the board is partitioned"""
        for workers in (1, 2, 3, n):
            handle = start(n, workers)
            assert handle.wait_for_completion(timeout=30)
            assert handle.solution_count() == expected
            assert all(s.is_valid() for s in handle.sink.get_all_solutions())
            assert sum(len(r.solutions) for r in handle.results()) == expected

    def test_worker_states_after_completion(self):
        """Test every worker ends COMPLETED and is_running turns false"""
        handle = start(6, 3)
        assert handle.wait_for_completion(timeout=10)
        assert not handle.is_running()
        assert handle.worker_states() == [WorkerState.COMPLETED] * 3
        assert [r.outcome for r in handle.results()] == [SearchOutcome.EXHAUSTED] * 3

    def test_poll_solutions_per_worker(self):
        """Test per-worker polling matches the worker's own results"""
        handle = start(8, 4)
        assert handle.wait_for_completion(timeout=30)
        for result in handle.results():
            assert handle.poll_solutions(result.worker_id) == result.solutions
            assert handle.poll_state(result.worker_id) is not None

    def test_request_stop(self):
        """Test a stop mid-run ends workers quickly and freezes the count"""
        handle = start(10, 2, step_delay_ms=2)
        assert wait_until(lambda: handle.poll_state(0) is not None)

        handle.request_stop()
        handle.request_stop()
        assert handle.wait_for_completion(timeout=5)
        assert not handle.is_running()
        assert set(handle.worker_states()) == {WorkerState.CANCELLED}

        frozen = handle.solution_count()
        time.sleep(0.05)
        assert handle.solution_count() == frozen
        assert frozen < 724

    def test_set_step_delay_reaches_running_workers(self):
        """Test lowering the delay wakes workers already paused"""
        handle = start(6, 2, step_delay_ms=60_000)
        assert wait_until(lambda: handle.poll_state(0) is not None)
        first = handle.poll_state(0).sequence

        handle.set_step_delay(0)
        assert wait_until(lambda: handle.poll_state(0).sequence > first, timeout=1.0)
        assert handle.wait_for_completion(timeout=10)
        assert handle.solution_count() == 4
        assert set(handle.worker_states()) == {WorkerState.COMPLETED}

    def test_rerun_after_reset(self):
        """Test a reset shared sink reports only the new run"""
        sink = StateAggregator()
        first = start(6, 2, sink)
        assert first.wait_for_completion(timeout=10)
        assert sink.solution_count() == 4

        sink.reset()
        second = start(6, 3, sink)
        assert second.wait_for_completion(timeout=10)
        assert sink.solution_count() == 4


class TestApi:
    """Test suite for the function-style surface"""

    @pytest.fixture(autouse=True)
    def restore_step_delay(self):
        yield
        api.set_step_delay(0)

    def test_round_trip(self):
        """Test the api helpers drive a handle end to end"""
        handle = api.start(8, 2)
        assert api.wait_for_completion(handle, timeout=30)
        assert not api.is_running(handle)
        total = sum(len(api.poll_solutions(handle, w.id)) for w in handle.workers)
        assert total == 92
        assert api.poll_state(handle, 0) is not None
        api.request_stop(handle)

    def test_step_delay_applies_to_future_searches(self):
        """Test a delay set before start becomes the new run's pacing"""
        api.set_step_delay(5)
        assert api.get_step_delay() == 5
        handle = api.start(4, 1)
        assert handle.pacing.delay_ms == 5
        assert handle.config.step_delay_ms == 5
        api.request_stop(handle)
        assert api.wait_for_completion(handle, timeout=5)

    def test_explicit_delay_overrides_default(self):
        """Test start(step_delay_ms=...) wins over the default"""
        api.set_step_delay(5)
        handle = api.start(4, 1, step_delay_ms=0)
        assert handle.pacing.delay_ms == 0
        assert api.wait_for_completion(handle, timeout=5)

    def test_step_delay_applies_to_running_searches(self):
        """Test changing the delay speeds up a search already paused"""
        api.set_step_delay(60_000)
        handle = api.start(6, 2)
        assert wait_until(lambda: api.poll_state(handle, 0) is not None)
        first = api.poll_state(handle, 0).sequence

        api.set_step_delay(0)
        assert handle.pacing.delay_ms == 0
        assert wait_until(lambda: api.poll_state(handle, 0).sequence > first, timeout=1.0)
        assert api.wait_for_completion(handle, timeout=10)
        assert handle.solution_count() == 4

    def test_negative_delay_rejected(self):
        """Test the default delay is validated"""
        with pytest.raises(InvalidStepDelay):
            api.set_step_delay(-1)
        assert api.get_step_delay() == 0
