"""
Rich progress display for scans.

``ScanProgressDisplay`` turns the ScanProgress snapshots delivered by the
coordinator into a rich progress bar. The total grows while the walker is
still discovering files.
"""

from __future__ import annotations

import types
from pathlib import Path

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from typing_extensions import Self

from omnimedia.scanner.models import ScanProgress


class ScanProgressDisplay:
    """Progress bar fed by ``ScanRequest.on_progress``.

    Args:
        console: Console to render on.
        disabled: Render nothing, used for ``--json`` output.
    """

    def __init__(self, console: Console | None = None, *, disabled: bool = False) -> None:
        self.disabled = disabled
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("[dim]{task.fields[current]}"),
            TimeElapsedColumn(),
            console=console,
            disable=disabled,
            transient=True,
        )
        self._task: TaskID | None = None
        self.last: ScanProgress | None = None

    def __enter__(self) -> Self:
        self._progress.start()
        self._task = self._progress.add_task("Scanning", total=None, current="")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        self._progress.stop()

    def update(self, progress: ScanProgress) -> None:
        """Progress callback, invoked from the coordinator's dispatcher thread."""
        self.last = progress
        if self._task is None:
            return
        done = progress.processed_files + progress.skipped_files + progress.errored_files
        self._progress.update(
            self._task,
            total=progress.total_files or None,
            completed=done,
            current=Path(progress.current_file).name if progress.current_file else "",
        )
