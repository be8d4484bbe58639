"""Batching writer between scan workers and the datastore.

Workers hand finished entries to ``add``. The buffer is written when it
reaches ``batch_size`` entries or when its oldest entry is older than
``flush_interval_seconds``, whichever comes first. Only one flush is in
flight at a time; other callers block behind it, so batches reach the
datastore in the order they were cut.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from omnimedia.config.models import ScanSettings
from omnimedia.datastore.base import ScanDatastore, WriteEntry
from omnimedia.datastore.retry import RetryConfiguration, call_with_retry
from omnimedia.shared.errors import InfrastructureError

logger = logging.getLogger(__name__)

FlushCallback = Callable[[int], None]


class BatchWriter:
    """Accumulates WriteEntry objects and persists them in batches.

    A flush that fails (DatastoreUnavailableError after ``write_retries``
    attempts, other datastore errors at once) stores the error in ``error``;
    every later ``add``, ``flush`` or ``close`` re-raises it.

    Args:
        datastore: Destination of the batches.
        settings: Batch size, flush interval and retry policy.
        on_flush: Called with the number of entries after each successful
            flush.
    """

    def __init__(
        self,
        datastore: ScanDatastore,
        settings: ScanSettings | None = None,
        on_flush: FlushCallback | None = None,
    ) -> None:
        self.datastore = datastore
        self.settings = settings or ScanSettings()
        self.on_flush = on_flush
        self._retry_config = RetryConfiguration.from_settings(self.settings)

        self._buffer: list[WriteEntry] = []
        self._oldest_pending: float | None = None
        self._buffer_lock = threading.Lock()
        self._flush_lock = threading.Lock()

        self._stop = threading.Event()
        self._ticker: threading.Thread | None = None

        self.error: InfrastructureError | None = None
        self.flush_count = 0
        self.written_count = 0

    def start(self) -> None:
        """Start the background thread enforcing the flush interval."""
        if self._ticker is not None:
            return
        self._ticker = threading.Thread(
            target=self._tick,
            name="omnimedia-batch-writer",
            daemon=True,
        )
        self._ticker.start()

    def _tick(self) -> None:
        interval = self.settings.flush_interval_seconds
        while not self._stop.wait(interval / 4):
            with self._buffer_lock:
                due = (
                    self._oldest_pending is not None
                    and time.monotonic() - self._oldest_pending >= interval
                )
            if not due or self.error is not None:
                continue
            try:
                self.flush()
            except InfrastructureError:
                # Recorded in self.error; the coordinator turns it into a failed scan
                logger.debug("Timed flush failed, writer disabled")

    def add(self, entry: WriteEntry) -> None:
        """Queue one entry, flushing when the batch is full.

        Raises:
            InfrastructureError: If an earlier flush failed or this one does.
        """
        if self.error is not None:
            raise self.error

        with self._buffer_lock:
            self._buffer.append(entry)
            if self._oldest_pending is None:
                self._oldest_pending = time.monotonic()
            full = len(self._buffer) >= self.settings.batch_size

        if full:
            self.flush()

    def flush(self) -> int:
        """Write everything buffered so far.

        Returns:
            Number of entries written.

        Raises:
            DatastoreUnavailableError: If the write still fails after retries.
            InfrastructureError: For non-transient datastore errors.
        """
        with self._flush_lock:
            if self.error is not None:
                raise self.error

            with self._buffer_lock:
                batch = self._buffer
                self._buffer = []
                self._oldest_pending = None

            if not batch:
                return 0

            try:
                call_with_retry(self._retry_config, self.datastore.batch_write, batch)
            except InfrastructureError as e:
                logger.error("Batch write failed, %d entries not persisted: %s", len(batch), e)
                self.error = e
                raise

            self.flush_count += 1
            self.written_count += len(batch)
            logger.debug("Flushed %d entries", len(batch))

        if self.on_flush is not None:
            self.on_flush(len(batch))
        return len(batch)

    @property
    def pending(self) -> int:
        with self._buffer_lock:
            return len(self._buffer)

    def close(self, flush: bool = True) -> None:
        """Stop the interval thread and optionally write the remainder.

        Raises:
            InfrastructureError: If an earlier flush failed or the final
                one does.
        """
        self._stop.set()
        if self._ticker is not None:
            self._ticker.join()
            self._ticker = None
        if self.error is not None:
            raise self.error
        if flush:
            self.flush()
