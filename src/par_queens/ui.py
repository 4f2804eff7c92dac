from typing import Iterable, Optional

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from par_queens.events import Solution, StepAction
from par_queens.partitioner import SearchHandle, WorkerState


COLORS = {
    "state": {
        WorkerState.IDLE: "dim",
        WorkerState.RUNNING: "yellow",
        WorkerState.COMPLETED: "spring_green2",
        WorkerState.CANCELLED: "dark_orange",
        WorkerState.FAILED: "bold red",
    },
    "action": {
        StepAction.PLACE: "green",
        StepAction.REMOVE: "red",
    },
}


def render(handle: Optional[SearchHandle]):
    """Render one row of progress per worker."""
    if handle is None:
        return Panel("Waiting for first update…", title="N-Queens", border_style="dim")

    config = handle.config
    table = Table(
        title=f"{config.board_size}-Queens  |  {len(handle.workers)} workers  |  "
        f"{handle.solution_count()} solutions  |  v{handle.sink.version}"
    )
    table.add_column("Worker", justify="right")
    table.add_column("Columns")
    table.add_column("State")
    table.add_column("Last step")
    table.add_column("Seq", justify="right")
    table.add_column("Solutions", justify="right")

    states = handle.worker_states()
    for worker, state in zip(handle.workers, states):
        event = handle.poll_state(worker.id)
        state_style = COLORS["state"][state]
        if event is None:
            step, sequence = "-", "-"
        else:
            action_style = COLORS["action"][event.action]
            step = f"[{action_style}]{event.action.value}[/{action_style}] ({event.row}, {event.col})"
            sequence = str(event.sequence)

        table.add_row(
            str(worker.id),
            f"{worker.columns.start}..{worker.columns.stop - 1}",
            f"[{state_style}]{state.value}[/{state_style}]",
            step,
            sequence,
            str(len(handle.poll_solutions(worker.id))),
        )

    return table


def ui_loop(handle: SearchHandle, console: Optional[Console] = None) -> None:
    """Redraw whenever the aggregator changes, until every worker is terminal."""
    version = -1
    with Live(render(None), console=console, refresh_per_second=30, screen=False) as live:
        while handle.is_running():
            version = handle.sink.wait_for_update(version, timeout=0.1)
            live.update(render(handle))
        live.update(render(handle))


def render_summary(handle: SearchHandle) -> Table:
    table = Table(title="Summary")
    table.add_column("Worker", justify="right")
    table.add_column("Columns")
    table.add_column("Outcome")
    table.add_column("Steps", justify="right")
    table.add_column("Solutions", justify="right")
    for result in handle.results():
        table.add_row(
            str(result.worker_id),
            f"{result.columns.start}..{result.columns.stop - 1}",
            result.outcome.value,
            str(result.steps),
            str(len(result.solutions)),
        )
    return table


def render_solutions(solutions: Iterable[Solution]) -> Iterable[Panel]:
    for index, solution in enumerate(solutions, start=1):
        yield Panel(
            solution.render(),
            title=f"#{index}  worker {solution.worker_id}",
            subtitle=" ".join(str(c) for c in solution.columns),
            expand=False,
        )
