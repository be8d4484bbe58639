"""Scan coordinator.

Runs one scan end to end: the path walker feeds a bounded queue, a fixed
pool of ``parallel`` worker threads takes files from it and runs change
detection, metadata extraction and the batched write for each file, and
the run finishes with a cleanup pass for files that disappeared.

Per-file failures are recorded and the scan continues. An inaccessible
root or a datastore that stays unreachable after retries fails the scan.
Cancellation is observed by workers between files.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
import time
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum

from omnimedia.config.models import Settings
from omnimedia.datastore.base import ScanDatastore, WriteEntry
from omnimedia.datastore.retry import RetryConfiguration, call_with_retry
from omnimedia.metadata.registry import (
    ExtractorRegistry,
    MetadataExtractor,
    build_default_registry,
)
from omnimedia.scanner.batch_writer import BatchWriter
from omnimedia.scanner.change_detector import ChangeDetector
from omnimedia.scanner.models import (
    ChangeKind,
    DiscoveredFile,
    FileFingerprint,
    FingerprintStatus,
    ScanFileError,
    ScanProgress,
    ScanRequest,
    ScanResult,
    ScanStatus,
    WalkWarning,
)
from omnimedia.scanner.progress import ProgressReporter
from omnimedia.scanner.walker import PathWalker
from omnimedia.shared.constants import ScanDefaults
from omnimedia.shared.errors import (
    ApplicationError,
    DatastoreUnavailableError,
    ErrorCode,
    ErrorContext,
    FileProcessingError,
    OmniMediaError,
    map_exception_to_error,
)
from omnimedia.shared.logging import (
    log_operation_error,
    log_operation_start,
    log_operation_success,
)

logger = logging.getLogger(__name__)

_SENTINEL = None


class ScanState(str, Enum):
    """Lifecycle of one scan run."""

    IDLE = "idle"
    WALKING = "walking"
    PROCESSING = "processing"
    FLUSHING = "flushing"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {ScanState.COMPLETED, ScanState.PARTIAL, ScanState.FAILED, ScanState.CANCELLED}
)

_ALLOWED_TRANSITIONS: dict[ScanState, frozenset[ScanState]] = {
    ScanState.IDLE: frozenset({ScanState.WALKING}),
    ScanState.WALKING: frozenset(
        {ScanState.PROCESSING, ScanState.FAILED, ScanState.CANCELLED}
    ),
    ScanState.PROCESSING: frozenset(
        {ScanState.FLUSHING, ScanState.FAILED, ScanState.CANCELLED}
    ),
    ScanState.FLUSHING: _TERMINAL_STATES,
}


class ScanRun:
    """State and counters of a single scan.

    Created by ``ScanCoordinator.create_run``; ``execute`` may be called
    once.
    """

    def __init__(
        self,
        coordinator: ScanCoordinator,
        request: ScanRequest,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.request = request
        self.cancel_event = cancel_event or threading.Event()
        self.settings = coordinator.settings
        self._retry_config = RetryConfiguration.from_settings(self.settings.scan)

        self._state = ScanState.IDLE
        self.state_history: list[ScanState] = [ScanState.IDLE]
        self._state_lock = threading.Lock()

        self._lock = threading.Lock()
        self._claimed: set[str] = set()
        self._total = 0
        self._processed = 0
        self._skipped = 0
        self._errors: list[ScanFileError] = []
        self._warnings: list[WalkWarning] = []
        self._current_file = ""
        self._walk_finished = False
        self._fatal: OmniMediaError | None = None

        self._prior: dict[str, FileFingerprint] = {}
        self._started = 0.0

        self._progress = ProgressReporter(
            request.on_progress,
            self.settings.scan.progress_interval_seconds,
        )

    @property
    def state(self) -> ScanState:
        with self._state_lock:
            return self._state

    def _transition(self, new_state: ScanState) -> None:
        with self._state_lock:
            allowed = _ALLOWED_TRANSITIONS.get(self._state, frozenset())
            if new_state not in allowed:
                msg = f"Invalid scan state transition {self._state.value} -> {new_state.value}"
                raise RuntimeError(msg)
            logger.debug("Scan state %s -> %s", self._state.value, new_state.value)
            self._state = new_state
            self.state_history.append(new_state)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def _should_stop(self) -> bool:
        return self.cancel_event.is_set() or self._fatal is not None

    def _set_fatal(self, error: OmniMediaError) -> None:
        with self._lock:
            if self._fatal is not None:
                return
            self._fatal = error
        log_operation_error(logger, error, operation="scan")

    def _on_warning(self, warning: WalkWarning) -> None:
        with self._lock:
            self._warnings.append(warning)

    def snapshot(self) -> ScanProgress:
        """Current cumulative counts."""
        elapsed = time.monotonic() - self._started if self._started else 0.0
        with self._lock:
            done = self._processed + self._skipped + len(self._errors)
            eta = None
            if self._walk_finished and done:
                eta = elapsed / done * (self._total - done)
            return ScanProgress(
                total_files=self._total,
                processed_files=self._processed,
                skipped_files=self._skipped,
                errored_files=len(self._errors),
                current_file=self._current_file,
                elapsed_seconds=elapsed,
                estimated_seconds_remaining=eta,
            )

    def _on_flush(self, count: int) -> None:
        self._progress.publish(self.snapshot())

    def execute(self) -> ScanResult:
        """Run the scan and return its terminal result. Never raises for
        scan-level failures; they resolve to a ``failed`` result."""
        request = self.request
        self._started = time.monotonic()
        log_operation_start(
            logger,
            "scan",
            context={
                "path": request.path,
                "category_id": request.category_id,
                "parallel": request.parallel,
                "recursive": request.recursive,
            },
        )
        self._transition(ScanState.WALKING)

        try:
            files = self.coordinator.walker.walk(
                request.path,
                recursive=request.recursive,
                on_warning=self._on_warning,
            )
            prior = call_with_retry(
                self._retry_config,
                self.coordinator.datastore.list_fingerprints,
                request.user_id,
                request.category_id,
            )
        except OmniMediaError as e:
            self._set_fatal(e)
            self._transition(ScanState.FAILED)
            return self._finish(deleted=0)

        self._prior = {fp.path: fp for fp in prior}
        self._progress.start()

        metadata = MetadataExtractor(
            self.coordinator.registry,
            self.settings.extraction,
            max_workers=request.parallel,
        )
        writer = BatchWriter(
            self.coordinator.datastore,
            self.settings.scan,
            on_flush=self._on_flush,
        )
        writer.start()

        try:
            walk_complete = self._run_pool(files, metadata, writer)
        finally:
            metadata.close()

        if self._fatal is None and not self.cancelled:
            self._transition(ScanState.FLUSHING)
        try:
            writer.close(flush=self._fatal is None)
        except OmniMediaError as e:
            self._set_fatal(e)

        deleted = 0
        if walk_complete and self._fatal is None and not self.cancelled:
            deleted = self._cleanup_deleted(prior)

        self._transition(self._terminal_state())
        return self._finish(deleted)

    def _run_pool(
        self,
        files: Iterator[DiscoveredFile],
        metadata: MetadataExtractor,
        writer: BatchWriter,
    ) -> bool:
        """Feed the walker output to the worker pool. Returns True if the
        walk ran to the end."""
        capacity = self.request.parallel * self.settings.scan.queue_size_per_worker
        file_queue: queue.Queue[DiscoveredFile | None] = queue.Queue(maxsize=capacity)

        with ThreadPoolExecutor(
            max_workers=self.request.parallel,
            thread_name_prefix="omnimedia-worker",
        ) as pool:
            futures = [
                pool.submit(self._consume_queue, file_queue, metadata, writer)
                for _ in range(self.request.parallel)
            ]

            walk_complete = False
            try:
                walk_complete = self._feed(files, file_queue)
            except OmniMediaError as e:
                self._set_fatal(e)
            finally:
                with self._lock:
                    self._walk_finished = True
                if self.state is ScanState.WALKING:
                    self._transition(ScanState.PROCESSING)
                for _ in futures:
                    file_queue.put(_SENTINEL)

            for future in futures:
                # Workers never raise for per-file problems; anything here is a bug
                future.result()

        if not walk_complete and self._fatal is None and not self.cancelled:
            logger.warning("Walk stopped early without cancellation: %s", self.request.path)
        return walk_complete

    def _feed(
        self,
        files: Iterator[DiscoveredFile],
        file_queue: queue.Queue[DiscoveredFile | None],
    ) -> bool:
        for discovered in files:
            if self._should_stop():
                return False
            with self._lock:
                # At most one in-flight detection per path per scan
                if discovered.path in self._claimed:
                    continue
                self._claimed.add(discovered.path)
                self._total += 1
            while True:
                try:
                    file_queue.put(discovered, timeout=ScanDefaults.QUEUE_POLL_SECONDS)
                    break
                except queue.Full:
                    if self._should_stop():
                        return False
        return not self._should_stop()

    def _consume_queue(
        self,
        file_queue: queue.Queue[DiscoveredFile | None],
        metadata: MetadataExtractor,
        writer: BatchWriter,
    ) -> None:
        while True:
            discovered = file_queue.get()
            try:
                if discovered is _SENTINEL:
                    break
                if self._should_stop():
                    # Drain without processing so the feeder never blocks
                    continue
                self._process_file(discovered, metadata, writer)
            except OmniMediaError as e:
                # Per-file errors are handled in _process_file, what reaches
                # here comes from the datastore
                self._set_fatal(e)
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.exception("Worker failed on %s", discovered.path if discovered else None)
                self._set_fatal(
                    ApplicationError(
                        ErrorCode.WORKER_POOL_ERROR,
                        f"Scan worker failed: {e}",
                        ErrorContext(operation="consume_queue"),
                        e,
                    )
                )
            finally:
                file_queue.task_done()

    def _process_file(
        self,
        discovered: DiscoveredFile,
        metadata: MetadataExtractor,
        writer: BatchWriter,
    ) -> None:
        request = self.request
        with self._lock:
            self._current_file = discovered.path
        prior = self._prior.get(discovered.path)

        try:
            detection = self.coordinator.detector.detect(
                discovered,
                prior,
                user_id=request.user_id,
                category_id=request.category_id,
                strong_hash=request.strong_hash,
                force_rescan=request.force_rescan,
            )
        except FileProcessingError as e:
            self._record_error(discovered, e, prior, writer)
            return

        if detection.kind is ChangeKind.UNCHANGED:
            if detection.hashed:
                writer.add(WriteEntry(detection.fingerprint))
            with self._lock:
                self._skipped += 1
            self._progress.publish(self.snapshot())
            return

        try:
            record = metadata.extract(discovered, detection.fingerprint)
        except FileProcessingError as e:
            self._record_error(discovered, e, detection.fingerprint, writer)
            return
        except Exception as e:  # pylint: disable=broad-exception-caught
            error = map_exception_to_error(e, discovered.path, "extract_metadata")
            self._record_error(discovered, error, detection.fingerprint, writer)
            return

        writer.add(WriteEntry(detection.fingerprint, record))
        with self._lock:
            self._processed += 1
        self._progress.publish(self.snapshot())

    def _record_error(
        self,
        discovered: DiscoveredFile,
        error: FileProcessingError,
        base: FileFingerprint | None,
        writer: BatchWriter,
    ) -> None:
        log_operation_error(
            logger,
            error,
            operation="process_file",
            level=logging.WARNING,
        )
        with self._lock:
            self._errors.append(
                ScanFileError(path=discovered.path, reason=error.reason, code=error.code.value)
            )

        if base is None:
            base = FileFingerprint(
                user_id=self.request.user_id,
                category_id=self.request.category_id,
                path=discovered.path,
                content_hash="",
                size=discovered.size,
                mtime=discovered.mtime,
                last_scanned=time.time(),
            )
        if error.code is not ErrorCode.FILE_VANISHED:
            writer.add(WriteEntry(base.with_status(FingerprintStatus.ERRORED)))
        self._progress.publish(self.snapshot())

    def _cleanup_deleted(self, prior: list[FileFingerprint]) -> int:
        unreadable = [
            warning.path.rstrip(os.sep) + os.sep
            for warning in self._warnings
            if warning.code == ErrorCode.DIRECTORY_UNREADABLE.value
        ]
        stale = [
            fp
            for fp in self.coordinator.detector.find_deleted(
                prior,
                self._claimed,
                os.path.expanduser(self.request.path),
                recursive=self.request.recursive,
            )
            # A directory we could not read says nothing about its files
            if not any(fp.path.startswith(prefix) for prefix in unreadable)
        ]
        if not stale:
            return 0

        try:
            removed = call_with_retry(
                self._retry_config,
                self.coordinator.datastore.delete_fingerprints,
                [fp.fingerprint_id for fp in stale],
            )
        except OmniMediaError as e:
            self._set_fatal(e)
            return 0
        logger.info("Removed %d stale fingerprints under %s", removed, self.request.path)
        return removed

    def _terminal_state(self) -> ScanState:
        if self._fatal is not None:
            return ScanState.FAILED
        if self.cancelled:
            return ScanState.CANCELLED
        if self._errors:
            return ScanState.PARTIAL
        return ScanState.COMPLETED

    def _finish(self, deleted: int) -> ScanResult:
        duration = time.monotonic() - self._started
        final = self.snapshot()
        self._progress.close(final)

        with self._lock:
            result = ScanResult(
                status=ScanStatus(self.state.value),
                total_files=self._total,
                processed_files=self._processed,
                skipped_files=self._skipped,
                errors=list(self._errors),
                deleted_files=deleted,
                warnings=list(self._warnings),
                duration_seconds=duration,
                fatal_error=str(self._fatal) if self._fatal is not None else None,
            )

        log_operation_success(
            logger,
            "scan",
            duration * 1000,
            result_info={
                "status": result.status.value,
                "total": result.total_files,
                "processed": result.processed_files,
                "skipped": result.skipped_files,
                "errored": result.errored_files,
                "deleted": result.deleted_files,
            },
        )
        return result


class ScanCoordinator:
    """Entry point of the scanner.

    Args:
        datastore: Fingerprint and media record persistence.
        registry: Extractor table, built from ``settings`` when omitted.
        settings: Scanner settings, defaults when omitted.

    Example:
        >>> coordinator = ScanCoordinator(InMemoryDatastore())
        >>> result = coordinator.scan(
        ...     ScanRequest(path="/media/tv", user_id="u1", category_id="tv")
        ... )
        >>> result.status
        <ScanStatus.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        datastore: ScanDatastore,
        registry: ExtractorRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.datastore = datastore
        self.settings = settings or Settings()
        self.registry = registry if registry is not None else build_default_registry(self.settings)
        self.walker = PathWalker(self.settings.scan.filter_config)
        self.detector = ChangeDetector(self.settings.hashing)
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    def create_run(
        self,
        request: ScanRequest,
        cancel_event: threading.Event | None = None,
    ) -> ScanRun:
        return ScanRun(self, request, cancel_event)

    def scan(
        self,
        request: ScanRequest,
        cancel_event: threading.Event | None = None,
    ) -> ScanResult:
        """Run a scan in the calling thread.

        Args:
            request: What to scan.
            cancel_event: Set it to cancel; workers stop between files and
                the result reports the counts gathered so far.
        """
        return self.create_run(request, cancel_event).execute()

    def submit(self, request: ScanRequest) -> tuple[Future[ScanResult], threading.Event]:
        """Run a scan in the background.

        Returns:
            The future of the ScanResult and the event that cancels the scan.
        """
        cancel_event = threading.Event()
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=ScanDefaults.MAX_CONCURRENT_SCANS,
                    thread_name_prefix="omnimedia-scan",
                )
            future = self._executor.submit(self.scan, request, cancel_event)
        return future, cancel_event

    def shutdown(self, wait: bool = True) -> None:
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None
