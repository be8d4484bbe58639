"""Scan job records persisted by the job tracker."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from omnimedia.scanner.models import ScanResult, ScanStatus


class JobStatus(str, Enum):
    """Lifecycle of a scan job."""

    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @classmethod
    def from_scan_status(cls, status: ScanStatus) -> JobStatus:
        return cls(status.value)

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.RUNNING


@dataclass
class ScanJob:
    """One submitted scan, as seen by a polling caller."""

    job_id: str
    user_id: str
    category_id: str
    path: str
    status: JobStatus = JobStatus.RUNNING
    total_files: int = 0
    processed_files: int = 0
    skipped_files: int = 0
    errored_files: int = 0
    deleted_files: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)
    error_message: str | None = None
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def apply_result(self, result: ScanResult) -> None:
        """Copy the terminal counts and status of a finished scan."""
        self.status = JobStatus.from_scan_status(result.status)
        self.total_files = result.total_files
        self.processed_files = result.processed_files
        self.skipped_files = result.skipped_files
        self.errored_files = result.errored_files
        self.deleted_files = result.deleted_files
        self.errors = [asdict(error) for error in result.errors]
        self.error_message = result.fatal_error
        self.updated_at = time.time()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScanJob:
        data = dict(data)
        data["status"] = JobStatus(data["status"])
        return cls(**data)
