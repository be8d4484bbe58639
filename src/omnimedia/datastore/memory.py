"""Thread-safe in-memory datastore.

Used by tests and by callers that only need scan results for the lifetime
of the process. ``fail_writes`` simulates an unreachable backend.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Sequence

from omnimedia.datastore.base import WriteEntry
from omnimedia.jobs.models import ScanJob
from omnimedia.scanner.models import FileFingerprint, MediaRecord, fingerprint_key
from omnimedia.shared.errors import create_datastore_unavailable_error

logger = logging.getLogger(__name__)


class InMemoryDatastore:
    """Fingerprints, media records and jobs held in dictionaries.

    Attributes:
        fail_writes: Number of upcoming ``batch_write`` calls that raise
            DatastoreUnavailableError. Negative means every call fails.
        batch_write_calls: Number of ``batch_write`` attempts, failed or not.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._fingerprints: dict[str, FileFingerprint] = {}
        self._records: dict[str, MediaRecord] = {}
        self._jobs: dict[str, ScanJob] = {}
        self.fail_writes = 0
        self.batch_write_calls = 0

    def get_fingerprint(self, user_id: str, path: str) -> FileFingerprint | None:
        with self._lock:
            return self._fingerprints.get(fingerprint_key(user_id, path))

    def list_fingerprints(self, user_id: str, category_id: str) -> list[FileFingerprint]:
        with self._lock:
            return [
                fp
                for fp in self._fingerprints.values()
                if fp.user_id == user_id and fp.category_id == category_id
            ]

    def upsert_fingerprint(self, fingerprint: FileFingerprint) -> None:
        with self._lock:
            self._fingerprints[fingerprint.fingerprint_id] = fingerprint

    def upsert_media_record(self, record: MediaRecord) -> None:
        with self._lock:
            self._records[record.fingerprint_id] = copy.deepcopy(record)

    def get_media_record(self, fingerprint_id: str) -> MediaRecord | None:
        with self._lock:
            record = self._records.get(fingerprint_id)
            return copy.deepcopy(record) if record is not None else None

    def batch_write(self, entries: Sequence[WriteEntry]) -> None:
        with self._lock:
            self.batch_write_calls += 1
            if self.fail_writes:
                if self.fail_writes > 0:
                    self.fail_writes -= 1
                raise create_datastore_unavailable_error(
                    "In-memory datastore marked unavailable",
                    operation="batch_write",
                )
            for entry in entries:
                self.upsert_fingerprint(entry.fingerprint)
                if entry.record is not None:
                    self.upsert_media_record(entry.record)

    def delete_fingerprints(self, fingerprint_ids: Sequence[str]) -> int:
        removed = 0
        with self._lock:
            for fingerprint_id in fingerprint_ids:
                if self._fingerprints.pop(fingerprint_id, None) is not None:
                    removed += 1
                self._records.pop(fingerprint_id, None)
        return removed

    def save_job(self, job: ScanJob) -> None:
        with self._lock:
            self._jobs[job.job_id] = copy.deepcopy(job)

    def get_job(self, job_id: str) -> ScanJob | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return copy.deepcopy(job) if job is not None else None

    @property
    def fingerprint_count(self) -> int:
        with self._lock:
            return len(self._fingerprints)

    @property
    def record_count(self) -> int:
        with self._lock:
            return len(self._records)
