"""Per-family metadata extractors."""

from __future__ import annotations

from .audio import AudioExtractor
from .base import Extractor, MetadataFields
from .document import DocumentExtractor
from .image import ImageExtractor
from .video import VideoExtractor

__all__ = [
    "AudioExtractor",
    "DocumentExtractor",
    "Extractor",
    "ImageExtractor",
    "MetadataFields",
    "VideoExtractor",
]
