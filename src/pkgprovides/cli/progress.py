#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Terminal progress display for downloads and database scans."""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TransferSpeedColumn,
)

from pkgprovides.progress import ProgressCallback, ProgressEvent


class ProgressContext:
    """Render :class:`ProgressEvent` streams as Rich progress bars.

    One bar is created per ``metadata["stage"]`` (download, extract, scan).
    When disabled, :attr:`callback` is None and nothing is drawn.

    Parameters
    ----------
    enabled : bool
        Whether to draw progress at all
    console : rich.console.Console, optional
        Console to draw on, defaults to stderr

    Examples
    --------
    >>> with ProgressContext(enabled=True) as progress:
    ...     fetch_database(config, progress_callback=progress.callback)

    """

    def __init__(self, enabled: bool, console: Console | None = None):
        """Initialize progress context."""
        self.enabled = enabled
        self._console = console or Console(stderr=True)
        self._progress: Progress | None = None
        self._tasks: dict[str, TaskID] = {}

    def __enter__(self) -> ProgressContext:
        """Start the live display."""
        if self.enabled:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                DownloadColumn(),
                TransferSpeedColumn(),
                console=self._console,
                transient=True,
            )
            self._progress.__enter__()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Stop the live display."""
        if self._progress is not None:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None

    @property
    def callback(self) -> ProgressCallback | None:
        """Progress callback to hand to the library, None when disabled."""
        return self.handle if self.enabled else None

    def handle(self, event: ProgressEvent) -> None:
        """Update the bar belonging to the event's stage."""
        if self._progress is None:
            return
        stage = str(event.metadata.get("stage", "work"))
        total = event.total or None

        if event.event_type == "started" or stage not in self._tasks:
            self._tasks[stage] = self._progress.add_task(f"[cyan]{event.message}", total=total)
        task = self._tasks[stage]

        if event.event_type == "error":
            self._console.print(f"[red]{event.message}: {event.metadata.get('error', 'unknown error')}[/red]")
            self._progress.stop_task(task)
        elif event.event_type == "finished":
            self._progress.update(task, completed=event.current, total=event.total or event.current)
            self._progress.stop_task(task)
        else:
            self._progress.update(task, completed=event.current, total=total)
