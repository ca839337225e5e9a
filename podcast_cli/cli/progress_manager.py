"""
Manages a Rich progress display with one bar per active download worker.

The display only observes transfers: nothing here feeds back into scheduling,
ordering or retries.
"""

import asyncio
import logging

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    Task,
    TaskID,
    TextColumn,
    TransferSpeedColumn,
)

from podcast_cli.utils.formatting import truncate_label

log = logging.getLogger(__name__)


class ProgressManager:
    """
    Multiplexes byte progress from concurrent workers into one terminal display.

    A chunk worker reuses its bar for every episode it downloads; bars stay on
    screen, marked Done or Failed, until the display is closed.
    """

    # Columns to the right of the label: bar, percentage, byte counts, rate, status
    RESERVED_SUFFIX_WIDTH = 70
    MIN_LABEL_WIDTH = 10

    def __init__(self, console: Console, enabled: bool = True):
        self.console = console
        self.enabled = enabled

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}", justify="left"),
            BarColumn(bar_width=20),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            DownloadColumn(),
            "•",
            TransferSpeedColumn(),
            TextColumn("{task.fields[status]}"),
            console=console,
            transient=False,
            disable=not enabled,
        )

        self._active_workers: set[TaskID] = set()
        self._stats = {
            "workers": 0,
            "peak_concurrent": 0,
            "completed": 0,
            "failed": 0,
            "skipped": 0,
        }

    def label_for(self, title: str) -> str:
        """Truncates an episode title to the room left beside the fixed columns."""
        width = max(
            self.console.width - self.RESERVED_SUFFIX_WIDTH, self.MIN_LABEL_WIDTH
        )
        return escape(truncate_label(title, width))

    def add_worker_bar(self, title: str) -> TaskID:
        """Creates the bar a worker keeps for its whole batch."""
        task_id = self.progress.add_task(
            self.label_for(title), total=None, start=True, status=""
        )
        self._active_workers.add(task_id)
        self._stats["workers"] += 1
        self._stats["peak_concurrent"] = max(
            self._stats["peak_concurrent"], len(self._active_workers)
        )
        return task_id

    def begin_item(
        self, task_id: TaskID, title: str, total: int | None, resume_offset: int = 0
    ) -> None:
        """
        Points a bar at the next episode. The bar starts at the resume offset so
        resumed downloads do not appear to restart; a zero total is indeterminate.
        """
        self.progress.reset(
            task_id,
            completed=resume_offset,
            description=self.label_for(title),
            status="",
        )
        # reset() keeps the previous total when passed None
        self._get_task(task_id).total = total or None

    def advance(self, task_id: TaskID, num_bytes: int) -> None:
        self.progress.update(task_id, advance=num_bytes)

    def restart_item(self, task_id: TaskID) -> None:
        """Rewinds a bar when a transfer has to start over from byte zero."""
        self.progress.update(task_id, completed=0)

    def finish_item(self, task_id: TaskID, success: bool = True) -> None:
        if success:
            self._stats["completed"] += 1
            task = self._get_task(task_id)
            if task.total is None:
                self.progress.update(task_id, total=task.completed)
            self.progress.update(task_id, status="[green]Done[/green]")
        else:
            self._stats["failed"] += 1
            self.progress.update(task_id, status="[red]Failed[/red]")

    def skip_item(self, task_id: TaskID, title: str) -> None:
        """Shows an episode that was already on disk; no bytes are counted."""
        self._stats["skipped"] += 1
        self.progress.reset(
            task_id,
            completed=0,
            description=self.label_for(title),
            status="[yellow]Skipped[/yellow]",
        )
        self._get_task(task_id).total = None

    def finish_worker(self, task_id: TaskID) -> None:
        """Marks a worker as idle; its bar stays visible."""
        self._active_workers.discard(task_id)
        self.progress.stop_task(task_id)

    def _get_task(self, task_id: TaskID) -> Task:
        for task in self.progress.tasks:
            if task.id == task_id:
                return task
        raise KeyError(task_id)

    def get_statistics(self) -> dict:
        return self._stats.copy()

    async def __aenter__(self):
        if self.enabled:
            self.progress.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.enabled:
            await asyncio.sleep(0.1)
            self.progress.stop()
