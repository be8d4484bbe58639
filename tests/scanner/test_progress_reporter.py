"""Tests for throttled progress delivery."""

from __future__ import annotations

import threading
import time

from omnimedia.scanner.models import ScanProgress
from omnimedia.scanner.progress import ProgressReporter


def _snapshot(done: int) -> ScanProgress:
    return ScanProgress(
        total_files=10,
        processed_files=done,
        skipped_files=0,
        errored_files=0,
        current_file=f"/library/{done}.mkv",
    )


class TestProgressReporter:
    def test_disabled_without_callback(self) -> None:
        reporter = ProgressReporter(None, 0.1)
        reporter.start()
        reporter.publish(_snapshot(1))
        reporter.close(_snapshot(2))

        assert not reporter.enabled
        assert reporter.delivered == 0

    def test_final_snapshot_is_always_delivered(self) -> None:
        received: list[ScanProgress] = []
        reporter = ProgressReporter(received.append, 10)
        reporter.start()

        for done in range(5):
            reporter.publish(_snapshot(done))
        reporter.close(_snapshot(10))

        assert received[-1].processed_files == 10
        # Interval of 10s: at most the first snapshot plus the final one
        assert len(received) <= 2

    def test_publish_does_not_block_on_slow_callback(self) -> None:
        release = threading.Event()

        def slow_callback(progress: ScanProgress) -> None:
            release.wait(5)

        reporter = ProgressReporter(slow_callback, 0)
        reporter.start()
        reporter.publish(_snapshot(1))

        started = time.monotonic()
        for done in range(100):
            reporter.publish(_snapshot(done))
        elapsed = time.monotonic() - started

        release.set()
        reporter.close()
        assert elapsed < 1

    def test_callback_exception_is_contained(self) -> None:
        def broken(progress: ScanProgress) -> None:
            raise RuntimeError("ui went away")

        reporter = ProgressReporter(broken, 0)
        reporter.start()
        reporter.publish(_snapshot(1))
        reporter.close(_snapshot(2))

        assert reporter.delivered == 0
