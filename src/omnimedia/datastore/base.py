"""Datastore interfaces the scanner depends on.

The coordinator receives a ``ScanDatastore`` as a constructor argument and
never reaches for a module-level client. Implementations raise
``DatastoreUnavailableError`` for transient failures so the batch writer
can retry them.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from omnimedia.scanner.models import FileFingerprint, MediaRecord

if TYPE_CHECKING:
    from omnimedia.jobs.models import ScanJob


@dataclass(frozen=True)
class WriteEntry:
    """One unit of a batch write: a fingerprint and, if extracted, its record."""

    fingerprint: FileFingerprint
    record: MediaRecord | None = None


@runtime_checkable
class ScanDatastore(Protocol):
    """Fingerprint and media record persistence."""

    def get_fingerprint(self, user_id: str, path: str) -> FileFingerprint | None:
        ...

    def list_fingerprints(self, user_id: str, category_id: str) -> list[FileFingerprint]:
        ...

    def upsert_fingerprint(self, fingerprint: FileFingerprint) -> None:
        ...

    def upsert_media_record(self, record: MediaRecord) -> None:
        ...

    def get_media_record(self, fingerprint_id: str) -> MediaRecord | None:
        ...

    def batch_write(self, entries: Sequence[WriteEntry]) -> None:
        """Persist all entries atomically; later entries win for the same path."""
        ...

    def delete_fingerprints(self, fingerprint_ids: Sequence[str]) -> int:
        """Remove fingerprints and their media records. Returns the count removed."""
        ...


@runtime_checkable
class JobStore(Protocol):
    """Scan job persistence used by the job tracker."""

    def save_job(self, job: ScanJob) -> None:
        ...

    def get_job(self, job_id: str) -> ScanJob | None:
        ...
