"""Throttled progress delivery.

Workers publish snapshots without blocking; a dispatcher thread forwards
the most recent one to the caller's callback at most once per interval.
Intermediate snapshots are coalesced and a snapshot older than one already
seen is dropped, so delivered counts never go backwards. The final
snapshot is always delivered.
"""

from __future__ import annotations

import logging
import threading
import time

from omnimedia.scanner.models import ProgressCallback, ScanProgress

logger = logging.getLogger(__name__)


def _completed(snapshot: ScanProgress) -> int:
    return snapshot.processed_files + snapshot.skipped_files + snapshot.errored_files


class ProgressReporter:
    """Forwards ScanProgress snapshots from a dispatcher thread.

    Args:
        callback: Receives snapshots. Exceptions it raises are logged and
            do not affect the scan.
        interval_seconds: Minimum delay between two callback invocations.
    """

    def __init__(self, callback: ProgressCallback | None, interval_seconds: float) -> None:
        self.callback = callback
        self.interval_seconds = interval_seconds
        self._latest: ScanProgress | None = None
        self._newest_done = -1
        self._lock = threading.Lock()
        self._pending = threading.Event()
        self._closed = threading.Event()
        self._thread: threading.Thread | None = None
        self.delivered = 0

    @property
    def enabled(self) -> bool:
        return self.callback is not None

    def start(self) -> None:
        if not self.enabled or self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._dispatch,
            name="omnimedia-progress",
            daemon=True,
        )
        self._thread.start()

    def publish(self, snapshot: ScanProgress) -> None:
        """Offer a snapshot. Never blocks on the callback."""
        if not self.enabled:
            return
        done = _completed(snapshot)
        with self._lock:
            # Workers publish concurrently, a slower one may arrive late
            if done < self._newest_done:
                return
            self._newest_done = done
            self._latest = snapshot
        self._pending.set()

    def _take(self) -> ScanProgress | None:
        with self._lock:
            snapshot, self._latest = self._latest, None
            self._pending.clear()
        return snapshot

    def _deliver(self, snapshot: ScanProgress) -> None:
        try:
            self.callback(snapshot)
            self.delivered += 1
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Progress callback raised an exception")

    def _dispatch(self) -> None:
        while not self._closed.is_set():
            self._pending.wait()
            if self._closed.is_set():
                break
            snapshot = self._take()
            if snapshot is None:
                continue
            started = time.monotonic()
            self._deliver(snapshot)
            remaining = self.interval_seconds - (time.monotonic() - started)
            if remaining > 0:
                self._closed.wait(remaining)

    def close(self, final: ScanProgress | None = None) -> None:
        """Stop the dispatcher and deliver the last snapshot."""
        if not self.enabled:
            return
        if final is not None:
            self.publish(final)
        self._closed.set()
        self._pending.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        snapshot = self._take()
        if snapshot is not None:
            self._deliver(snapshot)
