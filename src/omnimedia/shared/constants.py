"""
Scanner Constants

Centralized constants for the library scanner. Magic values used by the
walker, detector, extractors and configuration defaults live here so there
is a single source of truth.
"""

from __future__ import annotations

from typing import ClassVar


class VideoFormats:
    """Video container extensions."""

    EXTENSIONS = (
        ".mp4",
        ".mkv",
        ".avi",
        ".mov",
        ".wmv",
        ".flv",
        ".webm",
        ".m4v",
        ".mpg",
        ".mpeg",
        ".3gp",
        ".ogv",
    )


class AudioFormats:
    """Audio file extensions."""

    EXTENSIONS = (
        ".mp3",
        ".flac",
        ".wav",
        ".aac",
        ".ogg",
        ".opus",
        ".wma",
        ".m4a",
        ".alac",
        ".ape",
    )


class ImageFormats:
    """Image file extensions."""

    EXTENSIONS = (
        ".jpg",
        ".jpeg",
        ".png",
        ".gif",
        ".webp",
        ".bmp",
        ".tiff",
        ".svg",
        ".heic",
        ".heif",
        ".raw",
        ".cr2",
        ".nef",
    )

    # Formats Pillow cannot decode without extra plugins
    UNDECODABLE = (".svg", ".heic", ".heif", ".raw", ".cr2", ".nef")


class DocumentFormats:
    """Comic, ebook and document extensions."""

    COMIC_EXTENSIONS = (".cbz", ".cbr", ".cb7")
    EBOOK_EXTENSIONS = (".epub", ".mobi", ".azw3")
    PDF_EXTENSION = ".pdf"
    OTHER_EXTENSIONS = (".txt", ".doc", ".docx")

    EXTENSIONS = COMIC_EXTENSIONS + EBOOK_EXTENSIONS + (PDF_EXTENSION,) + OTHER_EXTENSIONS

    MAGAZINE_KEYWORDS = ("magazine", "issue")


class MediaExtensions:
    """Every extension the walker yields."""

    ALL = (
        VideoFormats.EXTENSIONS
        + AudioFormats.EXTENSIONS
        + ImageFormats.EXTENSIONS
        + DocumentFormats.EXTENSIONS
    )


class ExclusionPatterns:
    """Filename and directory patterns the walker never yields."""

    FILENAME_PATTERNS: ClassVar[list[str]] = [
        "*.tmp",
        "*.temp",
        "*.part",
        "*.partial",
        "*.crdownload",
        "*.download",
        "*.!qb",
        "*.!ut",
        "~*",
        "Thumbs.db",
        "desktop.ini",
    ]

    DIRECTORY_PATTERNS: ClassVar[list[str]] = [
        "node_modules",
        "@eaDir",
        "$RECYCLE.BIN",
        "System Volume Information",
        "lost+found",
        "#recycle",
    ]


class ScanDefaults:
    """Worker pool and batching defaults."""

    DEFAULT_PARALLEL = 4
    MIN_PARALLEL = 1
    MAX_PARALLEL = 16
    QUEUE_SIZE_PER_WORKER = 4
    BATCH_SIZE = 50
    FLUSH_INTERVAL_SECONDS = 2.0
    PROGRESS_INTERVAL_SECONDS = 0.5
    WRITE_RETRIES = 3
    RETRY_MIN_WAIT_SECONDS = 0.2
    RETRY_MAX_WAIT_SECONDS = 5.0
    QUEUE_POLL_SECONDS = 0.1
    MAX_CONCURRENT_SCANS = 4


class HashDefaults:
    """Fingerprint hashing policy defaults."""

    FULL_HASH_MAX_MB = 64
    SAMPLE_CHUNK_KB = 1024
    READ_CHUNK_BYTES = 1024 * 1024

    FULL_PREFIX = "sha256"
    SAMPLED_PREFIX = "sha256-sampled"


class ExtractionDefaults:
    """Metadata extraction defaults."""

    TIMEOUT_SECONDS = 30.0
    FFPROBE_BINARY = "ffprobe"
    HEADER_BYTES = 64


class LogConfig:
    """Logging defaults."""

    DEFAULT_LEVEL = "INFO"
    LOGGER_NAME = "omnimedia"


class CLIDefaults:
    """Command line defaults and exit codes."""

    VERSION = "0.1.0"
    APP_NAME = "omnimedia"
    APP_DESCRIPTION = "Scan media libraries into a fingerprinted metadata store."
    EXIT_SUCCESS = 0
    EXIT_ERROR = 1
    EXIT_PARTIAL = 2
    EXIT_INTERRUPTED = 130
    FUTURE_POLL_SECONDS = 0.2
