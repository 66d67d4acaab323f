#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Progress display and summary rendering for the CLI.

The job reports through ProgressEvents; ``create_progress_context_callback``
turns those into a rich progress bar plus colored log lines, or plain
stderr output when rich display is off.
"""

from __future__ import annotations

import sys
from typing import Any

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from comicpack.models import ConversionResult, SourceOutcome, SourceStage
from comicpack.progress import ProgressCallback, ProgressEvent


class ProgressContext:
    """Progress bar over the sources of one job.

    Parameters
    ----------
    use_progress : bool
        Whether to draw a rich progress bar; plain stderr lines otherwise
    total : int
        Number of sources
    description : str
        Description for the progress bar

    Examples
    --------
    >>> with ProgressContext(use_progress=True, total=3, description="Converting") as progress:
    ...     progress.update()
    ...     progress.log("Created a.cbz", level="success")

    """

    def __init__(self, use_progress: bool, total: int, description: str):
        """Initialize progress context."""
        self.use_progress = use_progress
        self.total = total
        self.description = description

        self._progress_obj: Progress | None = None
        self._task_id: Any = None
        self._console = Console(stderr=True)
        self._current = 0

    def __enter__(self) -> ProgressContext:
        """Enter context manager and start the progress bar."""
        if self.use_progress:
            self._progress_obj = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=self._console,
            )
            self._progress_obj.__enter__()
            self._task_id = self._progress_obj.add_task(f"[cyan]{self.description}...", total=self.total)
        else:
            print(f"{self.description} ({self.total} files)...", file=sys.stderr)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context manager and stop the progress bar."""
        if self._progress_obj is not None:
            self._progress_obj.__exit__(exc_type, exc_val, exc_tb)
            self._progress_obj = None

    def update(self, advance: int = 1) -> None:
        """Advance the bar by ``advance`` sources."""
        self._current += advance
        if self._progress_obj is not None:
            self._progress_obj.update(self._task_id, advance=advance)

    def set_status(self, text: str) -> None:
        """Show ``text`` next to the bar."""
        if self._progress_obj is not None:
            self._progress_obj.update(self._task_id, description=f"[cyan]{text}")

    def log(self, message: str, level: str = "info") -> None:
        """Log a message, color-coded by level when the bar is shown.

        Parameters
        ----------
        message : str
            Message to log
        level : str, default='info'
            Log level: 'info', 'success', 'warning', 'error'

        """
        if self.use_progress:
            style = {"success": "green", "error": "red", "warning": "yellow"}.get(level)
            self._console.print(f"[{style}]{message}[/{style}]" if style else message, markup=True, highlight=False)
        else:
            print(message, file=sys.stderr)


class SummaryRenderer:
    """Render the end-of-job summary table.

    Parameters
    ----------
    use_rich : bool
        Whether to render a rich table

    """

    def __init__(self, use_rich: bool):
        """Initialize summary renderer."""
        self.use_rich = use_rich
        self._console = Console(stderr=True)

    def render_conversion_summary(self, result: ConversionResult, title: str = "Conversion Summary") -> None:
        """Render succeeded / failed / skipped counts for a job."""
        rows = [
            ("+ Succeeded", str(result.succeeded)),
            ("- Failed", str(result.error_count)),
            ("Skipped", str(result.skipped)),
            ("Total", str(result.files_total)),
        ]
        if result.was_canceled:
            title = f"{title} (canceled)"

        if self.use_rich:
            table = Table(title=title)
            table.add_column("Status", style="cyan", no_wrap=True)
            table.add_column("Count", style="magenta")
            for label, count in rows:
                table.add_row(label, count)
            self._console.print(table)
        else:
            print(f"\n{title}", file=sys.stderr)
            print("=" * 40, file=sys.stderr)
            for label, count in rows:
                print(f"  {label + ':':14}{count}", file=sys.stderr)

    def render_failures(self, outcomes: list[SourceOutcome]) -> None:
        """List the sources that failed and why."""
        failed = [o for o in outcomes if o.stage is SourceStage.ERROR]
        if not failed:
            return

        if self.use_rich:
            table = Table(title="Failures")
            table.add_column("Source", style="cyan")
            table.add_column("Error", style="red")
            for outcome in failed:
                table.add_row(outcome.source.path.name, outcome.error or "")
            self._console.print(table)
        else:
            print("\nFailures", file=sys.stderr)
            print("-" * 60, file=sys.stderr)
            for outcome in failed:
                print(f"{outcome.source.path.name:30} {outcome.error or ''}", file=sys.stderr)


def create_progress_context_callback(progress: ProgressContext) -> ProgressCallback:
    """Create a callback that feeds job progress events into a ProgressContext.

    Parameters
    ----------
    progress : ProgressContext
        The progress context to feed events into

    Returns
    -------
    ProgressCallback
        Callback function that handles progress events

    """

    def callback(event: ProgressEvent) -> None:
        """Handle progress event and update the context."""
        if event.event_type == "file_started":
            progress.set_status(f"{event.message} ({event.current}/{event.total})")
        elif event.event_type == "file_finished":
            progress.update()
            outcome = event.metadata.get("outcome")
            if isinstance(outcome, SourceOutcome) and outcome.stage is SourceStage.ERROR:
                progress.log(f"Failed: {outcome.source.path.name}: {outcome.error}", level="error")
        elif event.event_type == "log_line":
            if event.message.startswith("Created "):
                progress.log(event.message, level="success")
            elif not event.message.startswith("Error: "):
                progress.log(event.message, level="warning")

    return callback


__all__ = ["ProgressContext", "SummaryRenderer", "create_progress_context_callback"]
