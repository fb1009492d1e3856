"""
Manages a Rich spinner that narrates the step a fetch is currently on.
"""

import time

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn, TimeElapsedColumn


class ProgressManager:
    """
    Shows one transient spinner line for the running step and keeps a record
    of which steps finished.
    """

    def __init__(self, console: Console, enabled: bool = True):
        self.console = console
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
            disable=not enabled,
        )
        self._task_id: TaskID | None = None
        self._current: str | None = None
        self._completed: list[str] = []
        self._failed: str | None = None
        self._start_time: float | None = None

    async def __aenter__(self) -> "ProgressManager":
        self._start_time = time.monotonic()
        self.progress.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None and self._current is not None:
            self.fail_step()
        self.progress.stop()
        return False

    def start_step(self, description: str) -> None:
        """Replaces the spinner line with a new step."""
        self._remove_task()
        self._current = description
        self._task_id = self.progress.add_task(f"[cyan]{description}[/cyan]", total=None)

    def complete_step(self) -> None:
        if self._current is not None:
            self._completed.append(self._current)
        self._current = None
        self._remove_task()

    def fail_step(self) -> None:
        if self._current is not None:
            self._failed = self._current
        self._current = None
        self._remove_task()

    def get_statistics(self) -> dict:
        elapsed = time.monotonic() - self._start_time if self._start_time else 0.0
        return {
            "completed_steps": list(self._completed),
            "failed_step": self._failed,
            "elapsed_s": elapsed,
        }

    def _remove_task(self) -> None:
        if self._task_id is not None:
            self.progress.remove_task(self._task_id)
            self._task_id = None
