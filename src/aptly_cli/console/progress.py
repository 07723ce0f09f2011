"""
Terminal progress reporter.

Wraps a Rich console and an optional progress bar. Messages printed while a
bar is live go through the bar's console so the output is not garbled.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

__all__ = ["ConsoleProgress"]

logger = logging.getLogger(__name__)


class ConsoleProgress:
    """
    Progress reporter backed by Rich.

    Lifecycle: ``start()`` once, any number of bars via ``init_bar()`` /
    ``shutdown_bar()``, then ``shutdown()``. Messages and bars are only
    accepted between ``start()`` and ``shutdown()``. Bar updates may come
    from downloader worker threads.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console: Console = console or Console(stderr=True)
        self._lock = threading.Lock()
        self._bar: Optional[Progress] = None
        self._task: Optional[TaskID] = None
        self.started = False
        self.stopped = False

    def start(self) -> None:
        """
        Start accepting output. Calling it again is a no-op.

        Nothing is rendered until the first message or bar; each ``init_bar()``
        starts its own live display on the console.
        """
        with self._lock:
            if self.started:
                return
            self.started = True
        logger.debug("Progress reporter started")

    def shutdown(self) -> None:
        """Stop any live bar and mark the reporter stopped. Idempotent."""
        self.shutdown_bar()
        with self._lock:
            if self.stopped:
                return
            self.stopped = True
        logger.debug("Progress reporter stopped")

    @property
    def active(self) -> bool:
        return self.started and not self.stopped

    def _check_active(self) -> None:
        if not self.active:
            raise RuntimeError("progress reporter is not running")

    def flush(self) -> None:
        self.console.file.flush()

    def printf(self, message: str) -> None:
        """Print a message verbatim (no markup), above the bar if one is live."""
        with self._lock:
            self._check_active()
            target = self._bar.console if self._bar is not None else self.console
        target.print(message, end="", markup=False, highlight=False)

    def init_bar(self, total: Optional[int], count_bytes: bool = False, description: str = "") -> None:
        """
        Show a progress bar.

        Args:
            total: Expected total (None for unknown)
            count_bytes: Render counts as byte sizes and transfer speed
            description: Label shown left of the bar

        Raises:
            RuntimeError: If the reporter is not running or a bar is already shown
        """
        if count_bytes:
            columns = (
                TextColumn("{task.description}"),
                BarColumn(),
                DownloadColumn(),
                TransferSpeedColumn(),
                TimeRemainingColumn(),
            )
        else:
            columns = (
                TextColumn("{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeRemainingColumn(),
            )

        with self._lock:
            self._check_active()
            if self._bar is not None:
                raise RuntimeError("progress bar already initialized")
            bar = Progress(*columns, console=self.console, transient=True)
            self._task = bar.add_task(description, total=total)
            self._bar = bar
        bar.start()

    def add_bar(self, count: int) -> None:
        """Advance the live bar; ignored when no bar is shown."""
        with self._lock:
            bar, task = self._bar, self._task
        if bar is not None and task is not None:
            bar.advance(task, count)

    def set_bar(self, count: int) -> None:
        with self._lock:
            bar, task = self._bar, self._task
        if bar is not None and task is not None:
            bar.update(task, completed=count)

    def shutdown_bar(self) -> None:
        """Remove the live bar if there is one."""
        with self._lock:
            bar = self._bar
            self._bar = None
            self._task = None
        if bar is not None:
            bar.stop()
