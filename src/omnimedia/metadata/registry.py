"""Extractor registry and the per-file metadata extraction step.

The registry is a typed table from MediaFamily to extractor, built once at
startup. ``MetadataExtractor`` wraps it for one scan: it classifies the
file, runs the matching extractor on a helper executor with a per-file
timeout and assembles the MediaRecord.
"""

from __future__ import annotations

import logging
import mimetypes
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import fields as dataclass_fields

from omnimedia.config.models import ExtractionSettings, Settings
from omnimedia.metadata.classifier import (
    MediaClassification,
    MediaFamily,
    classify_media,
)
from omnimedia.metadata.extractors.audio import AudioExtractor
from omnimedia.metadata.extractors.base import Extractor, MetadataFields
from omnimedia.metadata.extractors.document import DocumentExtractor
from omnimedia.metadata.extractors.image import ImageExtractor
from omnimedia.metadata.extractors.video import VideoExtractor
from omnimedia.metadata.naming import suggest_filename
from omnimedia.scanner.models import DiscoveredFile, FileFingerprint, MediaRecord
from omnimedia.shared.constants import ScanDefaults
from omnimedia.shared.errors import (
    FileProcessingError,
    create_corrupt_file_error,
    create_extraction_timeout_error,
    create_unsupported_format_error,
    map_exception_to_error,
)

logger = logging.getLogger(__name__)

_RECORD_FIELDS = {f.name for f in dataclass_fields(MediaRecord)}


class ExtractorRegistry:
    """Maps each MediaFamily to the extractor that handles it."""

    def __init__(self, extractors: dict[MediaFamily, Extractor] | None = None) -> None:
        self._extractors: dict[MediaFamily, Extractor] = dict(extractors or {})

    def register(self, extractor: Extractor) -> None:
        self._extractors[extractor.family] = extractor

    def get(self, family: MediaFamily) -> Extractor | None:
        return self._extractors.get(family)

    def __contains__(self, family: object) -> bool:
        return family in self._extractors

    def __len__(self) -> int:
        return len(self._extractors)


def build_default_registry(settings: Settings | ExtractionSettings | None = None) -> ExtractorRegistry:
    """Create the registry with the video, audio, image and document extractors."""
    if isinstance(settings, Settings):
        extraction = settings.extraction
    else:
        extraction = settings or ExtractionSettings()

    registry = ExtractorRegistry()
    registry.register(VideoExtractor(extraction))
    registry.register(AudioExtractor())
    registry.register(ImageExtractor())
    registry.register(DocumentExtractor())
    return registry


def build_media_record(
    fingerprint: FileFingerprint,
    classification: MediaClassification,
    extracted: MetadataFields,
) -> MediaRecord:
    """Merge filename classification and extracted metadata into a MediaRecord.

    Extracted values win over values parsed from the file name; unknown keys
    are kept under ``technical``.
    """
    record = MediaRecord(
        fingerprint_id=fingerprint.fingerprint_id,
        user_id=fingerprint.user_id,
        category_id=fingerprint.category_id,
        path=fingerprint.path,
        media_type=classification.media_type,
        title=classification.title,
        season=classification.season,
        episode=classification.episode,
        year=classification.year,
        resolution=classification.resolution,
        source=classification.source,
        mime_type=mimetypes.guess_type(fingerprint.path)[0],
    )
    if classification.release_group:
        record.technical["release_group"] = classification.release_group

    for key, value in extracted.items():
        if key == "technical":
            record.technical.update({k: v for k, v in value.items() if v is not None})
        elif key in _RECORD_FIELDS:
            if value is not None and value != []:
                setattr(record, key, value)
        elif value is not None:
            record.technical[key] = value

    record.suggested_filename = suggest_filename(classification, record)
    return record


class MetadataExtractor:
    """Runs extractors for one scan with a bounded per-file timeout.

    A hung decoder keeps its helper thread busy, so a timeout retires the
    helper executor and later files get a fresh one. The calling worker is
    released after ``timeout_seconds`` and the file is recorded as errored.

    Args:
        registry: Family to extractor table.
        settings: Extraction settings (timeout).
        max_workers: Helper threads, normally the scan's worker count.
    """

    def __init__(
        self,
        registry: ExtractorRegistry,
        settings: ExtractionSettings | None = None,
        max_workers: int = ScanDefaults.DEFAULT_PARALLEL,
    ) -> None:
        self.registry = registry
        self.settings = settings or ExtractionSettings()
        self._max_workers = max_workers
        self._executor_lock = threading.Lock()
        self._executor = self._new_executor()

    def _new_executor(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="omnimedia-extract",
        )

    def _retire_executor(self, stale: ThreadPoolExecutor) -> None:
        with self._executor_lock:
            if self._executor is not stale:
                return
            self._executor = self._new_executor()
        # Queued work on the stale executor still runs on its free threads
        stale.shutdown(wait=False)

    def extract(self, file: DiscoveredFile, fingerprint: FileFingerprint) -> MediaRecord:
        """Extract the MediaRecord for a new or modified file.

        Raises:
            UnsupportedFormatError: No extractor can read the file.
            CorruptFileError: Empty, truncated or mismatched content.
            ExtractionTimeoutError: Extraction exceeded the timeout.
            FileProcessingError: Any other per-file failure.
        """
        classification = classify_media(file.path)

        if file.size == 0:
            raise create_corrupt_file_error(file.path, "File is empty (0 bytes)")

        extractor = self.registry.get(classification.family)
        if extractor is None:
            raise create_unsupported_format_error(
                file.path,
                f"No extractor registered for {classification.family.value} files",
            )

        with self._executor_lock:
            executor = self._executor
            future = executor.submit(extractor.extract, file.path, classification)
        try:
            extracted = future.result(timeout=self.settings.timeout_seconds)
        except FuturesTimeoutError as e:
            future.cancel()
            self._retire_executor(executor)
            logger.warning("Extraction timed out: %s", file.path)
            raise create_extraction_timeout_error(file.path, self.settings.timeout_seconds) from e
        except FileProcessingError:
            raise
        except Exception as e:
            raise map_exception_to_error(e, file.path, "extract_metadata") from e

        return build_media_record(fingerprint, classification, extracted)

    def close(self) -> None:
        """Release helper threads without waiting for hung extractions."""
        with self._executor_lock:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> MetadataExtractor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
