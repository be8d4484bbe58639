"""Metadata extraction for scanned media files.

- classify_media: pure filename classification
- ExtractorRegistry / build_default_registry: family to extractor table
- MetadataExtractor: per-file extraction with a bounded timeout
- suggest_filename: canonical library file names
"""

from __future__ import annotations

from .classifier import MediaClassification, MediaFamily, classify_media
from .naming import suggest_filename
from .registry import (
    ExtractorRegistry,
    MetadataExtractor,
    build_default_registry,
    build_media_record,
)

__all__ = [
    "ExtractorRegistry",
    "MediaClassification",
    "MediaFamily",
    "MetadataExtractor",
    "build_default_registry",
    "build_media_record",
    "classify_media",
    "suggest_filename",
]
