"""Library scanner pipeline.

The walker, change detector and data models are importable from here.
The coordinator lives in ``omnimedia.scanner.coordinator`` because it
depends on the metadata package, which itself uses these models.
"""

from __future__ import annotations

from .change_detector import ChangeDetector, Detection
from .models import (
    ChangeKind,
    DiscoveredFile,
    FileFingerprint,
    FingerprintStatus,
    MediaRecord,
    MediaType,
    ScanFileError,
    ScanProgress,
    ScanRequest,
    ScanResult,
    ScanStatus,
    WalkWarning,
    fingerprint_key,
)
from .walker import PathWalker, check_root

__all__ = [
    "ChangeDetector",
    "ChangeKind",
    "Detection",
    "DiscoveredFile",
    "FileFingerprint",
    "FingerprintStatus",
    "MediaRecord",
    "MediaType",
    "PathWalker",
    "ScanFileError",
    "ScanProgress",
    "ScanRequest",
    "ScanResult",
    "ScanStatus",
    "WalkWarning",
    "check_root",
    "fingerprint_key",
]
