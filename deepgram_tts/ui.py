"""
UI module for deepgram_tts package.

Contains console output, the progress spinner and logging setup.
"""

import logging
from contextlib import contextmanager
from typing import Iterable, Optional, Tuple

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from .transfer import DeliveryState

console = Console()
err_console = Console(stderr=True)

STATE_LABELS = {
    DeliveryState.IDLE: "Preparing…",
    DeliveryState.REQUESTING: "Contacting Deepgram…",
    DeliveryState.DOWNLOADING: "Downloading audio…",
    DeliveryState.STREAMING: "Streaming audio…",
    DeliveryState.PLAYING: "Playing audio…",
    DeliveryState.CLEANING_UP: "Cleaning up…",
    DeliveryState.DONE: "Done",
    DeliveryState.FAILED: "Failed",
}


def setup_logging(verbose: bool = False) -> None:
    """Route package logging through rich on stderr."""
    handler = RichHandler(console=err_console, show_path=False, show_time=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger = logging.getLogger("deepgram_tts")
    package_logger.handlers[:] = [handler]
    package_logger.setLevel(logging.INFO if verbose else logging.WARNING)
    package_logger.propagate = False


@contextmanager
def progress_context(description: str = "Processing…", enabled: bool = True):
    """
    Context manager for a transient spinner.

    Args:
        description: Initial task description
        enabled: False yields (None, None) so verbose log lines are not redrawn over

    Yields:
        (Progress, task id) or (None, None)
    """
    if not enabled:
        yield None, None
        return
    with Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        TimeElapsedColumn(),
        transient=True,
        console=err_console,
    ) as progress:
        task = progress.add_task(description, total=None)
        yield progress, task


def state_reporter(progress: Optional[Progress], task):
    """Return an on_state callback that relabels the spinner."""
    def report(state: DeliveryState) -> None:
        if progress is not None:
            progress.update(task, description=STATE_LABELS[state])
    return report


def print_models(models: Iterable[Tuple[str, str]], default: str) -> None:
    console.print("Available models:")
    for name, voice in models:
        suffix = ", default" if name == default else ""
        console.print(f" - {name} ({voice}{suffix})")


def report_error(kind: str, message: str) -> None:
    err_console.print(f"[bold red]Error ({kind}):[/] {escape(message)}", highlight=False)


def report_success(message: str) -> None:
    console.print(f"[green]✅ {message}[/]")
