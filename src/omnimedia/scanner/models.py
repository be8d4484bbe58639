"""Data models for the library scanner.

``ScanRequest`` is the validated input of a scan. The remaining types are
plain dataclasses that flow between the walker, the change detector, the
metadata extractor and the coordinator.
"""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from omnimedia.shared.constants import ScanDefaults


class MediaType(str, Enum):
    """Media classification of one file."""

    MOVIE = "movie"
    TV_EPISODE = "tv_episode"
    MUSIC = "music"
    PHOTO = "photo"
    COMIC = "comic"
    MAGAZINE = "magazine"
    EBOOK = "ebook"
    DOCUMENT = "document"


class ChangeKind(str, Enum):
    """Outcome of change detection for one file."""

    NEW = "new"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"
    DELETED = "deleted"


class FingerprintStatus(str, Enum):
    """Whether the last processing of a fingerprinted file succeeded."""

    OK = "ok"
    ERRORED = "errored"


class ScanStatus(str, Enum):
    """Terminal status of a scan."""

    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"


def fingerprint_key(user_id: str, path: str) -> str:
    """Stable identifier of the fingerprint of ``path`` owned by ``user_id``."""
    digest = hashlib.sha256(f"{user_id}\x00{path}".encode()).hexdigest()
    return digest[:32]


@dataclass(frozen=True)
class DiscoveredFile:
    """A filesystem entry yielded by the path walker."""

    path: str
    size: int
    mtime: float
    extension: str

    @property
    def name(self) -> str:
        return Path(self.path).name


@dataclass(frozen=True)
class WalkWarning:
    """A non-fatal condition met while walking (symlink cycle, unreadable dir)."""

    path: str
    reason: str
    code: str


@dataclass(frozen=True)
class FileFingerprint:
    """Per-file identity record persisted between scans.

    Unique per (user_id, path).
    """

    user_id: str
    category_id: str
    path: str
    content_hash: str
    size: int
    mtime: float
    last_scanned: float
    status: FingerprintStatus = FingerprintStatus.OK

    @property
    def fingerprint_id(self) -> str:
        return fingerprint_key(self.user_id, self.path)

    def with_status(self, status: FingerprintStatus) -> FileFingerprint:
        return replace(self, status=status)


@dataclass
class MediaRecord:
    """Structured metadata extracted from one file."""

    fingerprint_id: str
    user_id: str
    category_id: str
    path: str
    media_type: MediaType
    title: str | None = None
    season: int | None = None
    episode: int | None = None
    year: int | None = None
    artist: str | None = None
    album: str | None = None
    genre: list[str] = field(default_factory=list)
    width: int | None = None
    height: int | None = None
    duration: float | None = None
    bitrate: int | None = None
    codec: str | None = None
    framerate: float | None = None
    sample_rate: int | None = None
    resolution: str | None = None
    source: str | None = None
    mime_type: str | None = None
    suggested_filename: str | None = None
    technical: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["media_type"] = self.media_type.value
        return data


@dataclass(frozen=True)
class ScanProgress:
    """Snapshot of a running scan, delivered to the progress callback."""

    total_files: int
    processed_files: int
    skipped_files: int
    errored_files: int
    current_file: str
    elapsed_seconds: float = 0.0
    estimated_seconds_remaining: float | None = None


@dataclass(frozen=True)
class ScanFileError:
    """Per-file error reported in a ScanResult."""

    path: str
    reason: str
    code: str


@dataclass
class ScanResult:
    """Terminal record of one scan."""

    status: ScanStatus
    total_files: int = 0
    processed_files: int = 0
    skipped_files: int = 0
    errors: list[ScanFileError] = field(default_factory=list)
    deleted_files: int = 0
    warnings: list[WalkWarning] = field(default_factory=list)
    duration_seconds: float = 0.0
    fatal_error: str | None = None

    @property
    def errored_files(self) -> int:
        return len(self.errors)

    @property
    def failed_paths(self) -> list[str]:
        """Paths a caller can resubmit to retry just the failed files."""
        return [error.path for error in self.errors]

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "total_files": self.total_files,
            "processed_files": self.processed_files,
            "skipped_files": self.skipped_files,
            "deleted_files": self.deleted_files,
            "errors": [asdict(error) for error in self.errors],
            "warnings": [asdict(warning) for warning in self.warnings],
            "duration_seconds": round(self.duration_seconds, 3),
            "fatal_error": self.fatal_error,
        }


ProgressCallback = Callable[[ScanProgress], None]


class ScanRequest(BaseModel):
    """Input of one scan. Immutable once created."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: str = Field(min_length=1)
    user_id: str
    category_id: str = Field(min_length=1)
    recursive: bool = True
    parallel: int = ScanDefaults.DEFAULT_PARALLEL
    strong_hash: bool = False
    force_rescan: bool = False
    on_progress: Optional[ProgressCallback] = Field(default=None, exclude=True)

    @field_validator("path", "category_id")
    @classmethod
    def validate_non_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "Value must be a non-empty string"
            raise ValueError(msg)
        return v

    @field_validator("parallel")
    @classmethod
    def clamp_parallel(cls, v: int) -> int:
        return max(ScanDefaults.MIN_PARALLEL, min(ScanDefaults.MAX_PARALLEL, v))
