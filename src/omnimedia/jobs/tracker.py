"""Background scan jobs with a persisted, pollable status.

The tracker persists a ``running`` job record before the scan starts,
mirrors progress counts into it while the scan runs and writes the
terminal status once the scan settles. Callers poll with ``get``.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future

from omnimedia.datastore.base import JobStore
from omnimedia.jobs.models import JobStatus, ScanJob
from omnimedia.scanner.coordinator import ScanCoordinator
from omnimedia.scanner.models import ProgressCallback, ScanProgress, ScanRequest, ScanResult
from omnimedia.shared.errors import OmniMediaError, create_job_not_found_error

logger = logging.getLogger(__name__)


def make_job_id(user_id: str, now: float | None = None) -> str:
    """``scan_<epoch millis>_<user>``."""
    millis = int((now if now is not None else time.time()) * 1000)
    return f"scan_{millis}_{user_id}"


class ScanJobTracker:
    """Submits scans to a coordinator and tracks them as jobs.

    Args:
        coordinator: Runs the scans.
        job_store: Where job records are persisted.
    """

    def __init__(self, coordinator: ScanCoordinator, job_store: JobStore) -> None:
        self.coordinator = coordinator
        self.job_store = job_store
        self._lock = threading.Lock()
        self._futures: dict[str, Future[ScanResult]] = {}
        self._cancel_events: dict[str, threading.Event] = {}
        self._settled: dict[str, threading.Event] = {}

    def _unique_job_id(self, user_id: str) -> str:
        job_id = make_job_id(user_id)
        candidate, suffix = job_id, 1
        while candidate in self._settled or self.job_store.get_job(candidate) is not None:
            suffix += 1
            candidate = f"{job_id}_{suffix}"
        return candidate

    def submit(self, request: ScanRequest) -> str:
        """Start a scan in the background and return its job id."""
        with self._lock:
            job_id = self._unique_job_id(request.user_id)
            job = ScanJob(
                job_id=job_id,
                user_id=request.user_id,
                category_id=request.category_id,
                path=request.path,
            )
            self.job_store.save_job(job)
            self._settled[job_id] = threading.Event()

        tracked = request.model_copy(
            update={"on_progress": self._progress_hook(job_id, request.on_progress)}
        )
        future, cancel_event = self.coordinator.submit(tracked)

        with self._lock:
            self._futures[job_id] = future
            self._cancel_events[job_id] = cancel_event
        future.add_done_callback(lambda f: self._settle(job_id, f))

        logger.info("Submitted scan job %s for %s", job_id, request.path)
        return job_id

    def _progress_hook(
        self,
        job_id: str,
        callback: ProgressCallback | None,
    ) -> ProgressCallback:
        def on_progress(progress: ScanProgress) -> None:
            job = self.job_store.get_job(job_id)
            if job is not None and not job.status.is_terminal:
                job.total_files = progress.total_files
                job.processed_files = progress.processed_files
                job.skipped_files = progress.skipped_files
                job.errored_files = progress.errored_files
                job.updated_at = time.time()
                self.job_store.save_job(job)
            if callback is not None:
                callback(progress)

        return on_progress

    def _settle(self, job_id: str, future: Future[ScanResult]) -> None:
        try:
            job = self.job_store.get_job(job_id)
            if job is None:
                logger.error("Job record vanished before completion: %s", job_id)
                return

            error = future.exception() if not future.cancelled() else None
            if future.cancelled():
                job.status = JobStatus.CANCELLED
                job.updated_at = time.time()
            elif error is not None:
                logger.error("Scan job %s raised: %s", job_id, error)
                job.status = JobStatus.FAILED
                job.error_message = str(error)
                job.updated_at = time.time()
            else:
                job.apply_result(future.result())
            self.job_store.save_job(job)
            logger.info("Scan job %s finished with status %s", job_id, job.status.value)
        except OmniMediaError:
            logger.exception("Could not persist the final state of job %s", job_id)
        finally:
            with self._lock:
                self._futures.pop(job_id, None)
                self._cancel_events.pop(job_id, None)
                settled = self._settled.get(job_id)
            if settled is not None:
                settled.set()

    def get(self, job_id: str, user_id: str) -> ScanJob:
        """Return a job owned by ``user_id``.

        Raises:
            JobNotFoundError: If the job does not exist or belongs to
                another user.
        """
        job = self.job_store.get_job(job_id)
        if job is None or job.user_id != user_id:
            raise create_job_not_found_error(job_id)
        return job

    def cancel(self, job_id: str) -> bool:
        """Ask a running job to stop. Returns False if it is not running."""
        with self._lock:
            cancel_event = self._cancel_events.get(job_id)
        if cancel_event is None:
            return False
        cancel_event.set()
        logger.info("Cancellation requested for scan job %s", job_id)
        return True

    def wait(self, job_id: str, timeout: float | None = None) -> ScanJob | None:
        """Block until the job's final state is persisted.

        Returns None if the timeout expires first.
        """
        with self._lock:
            settled = self._settled.get(job_id)
        if settled is None:
            return self.job_store.get_job(job_id)
        if not settled.wait(timeout):
            return None
        return self.job_store.get_job(job_id)

    def running_jobs(self) -> list[str]:
        with self._lock:
            return list(self._futures)
