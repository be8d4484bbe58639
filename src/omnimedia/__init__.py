"""OmniMedia library scanner.

Walks media libraries, fingerprints files, extracts container, tag and
EXIF metadata and batches the results into a datastore.
"""

from __future__ import annotations

from omnimedia.scanner.coordinator import ScanCoordinator
from omnimedia.scanner.models import ScanProgress, ScanRequest, ScanResult, ScanStatus
from omnimedia.shared.constants import CLIDefaults

__version__ = CLIDefaults.VERSION

__all__ = [
    "ScanCoordinator",
    "ScanProgress",
    "ScanRequest",
    "ScanResult",
    "ScanStatus",
    "__version__",
]
