import logging
import sys
from typing import Optional

import click
import structlog
from rich.console import Console

from par_queens.config import ConfigurationError, default_worker_count
from par_queens.partitioner import SearchHandle, start
from par_queens.ui import render_solutions, render_summary, ui_loop


def configure_logging(verbose: bool = False) -> None:
    """Key/value console logs on stderr; DEBUG with --verbose, else INFO."""
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        # Resolve sys.stderr per call so rich.live's redirection is honoured.
        logger_factory=lambda *args: structlog.PrintLogger(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log worker lifecycle at debug level")
def cli(verbose: bool):
    configure_logging(verbose)


def run_search(board_size: int, workers: Optional[int], delay_ms: float) -> SearchHandle:
    """Start a search, translating configuration errors into click usage errors."""
    if workers is None:
        workers = default_worker_count(board_size)
    try:
        return start(board_size, workers, step_delay_ms=delay_ms)
    except ConfigurationError as e:
        raise click.BadParameter(str(e)) from e


def wait_or_stop(handle: SearchHandle, live: bool, console: Console) -> bool:
    """Wait for the search to finish. Ctrl+C requests a cooperative stop. Returns True if interrupted."""
    interrupted = False
    try:
        if live:
            ui_loop(handle, console=console)
        handle.wait_for_completion()
    except KeyboardInterrupt:
        interrupted = True
        handle.request_stop()
        handle.wait_for_completion()
    return interrupted


@cli.command()
@click.argument("board_size", type=int)
@click.option("--workers", "-w", type=int, envvar="PAR_QUEENS_WORKERS", help="Number of parallel workers (default: CPU count)")
@click.option("--delay", "-d", "delay_ms", type=float, default=0.0, envvar="PAR_QUEENS_DELAY_MS", help="Pause after every placement/removal, in milliseconds")
@click.option("--live/--no-live", default=True, help="Show live per-worker progress")
@click.option("--show-solutions", is_flag=True, help="Print the solution boards")
@click.option("--limit", type=click.IntRange(min=0), default=10, help="Maximum number of boards printed by --show-solutions")
def solve(board_size: int, workers: Optional[int], delay_ms: float, live: bool, show_solutions: bool, limit: int):
    """Enumerate every solution of the BOARD_SIZE-Queens problem."""
    console = Console()
    handle = run_search(board_size, workers, delay_ms)
    interrupted = wait_or_stop(handle, live, console)

    console.print(render_summary(handle))
    if show_solutions:
        for panel in render_solutions(handle.sink.get_all_solutions()[:limit]):
            console.print(panel)

    total = handle.solution_count()
    if interrupted:
        console.print(f"Stopped early: {total} solutions found before the stop")
    else:
        console.print(f"{board_size}-Queens: {total} solutions")


@cli.command()
@click.argument("board_size", type=int)
@click.option("--workers", "-w", type=int, envvar="PAR_QUEENS_WORKERS", help="Number of parallel workers (default: CPU count)")
def count(board_size: int, workers: Optional[int]):
    """Print only the number of solutions."""
    handle = run_search(board_size, workers, 0.0)
    wait_or_stop(handle, live=False, console=Console())
    click.echo(handle.solution_count())


if __name__ == "__main__":
    cli()
