"""Shared pieces of the per-family metadata extractors."""

from __future__ import annotations

import re
from typing import Any, Protocol

from omnimedia.metadata.classifier import MediaClassification, MediaFamily
from omnimedia.shared.errors import create_corrupt_file_error, map_exception_to_error

# Field name -> value, using MediaRecord attribute names. Keys an extractor
# does not know about go under "technical".
MetadataFields = dict[str, Any]

_YEAR_PREFIX = re.compile(r"^(?P<year>\d{4})")


class Extractor(Protocol):
    """Reads type-specific metadata from one file.

    Implementations raise UnsupportedFormatError or CorruptFileError; any
    other exception is mapped to a FileProcessingError by the caller.
    """

    family: MediaFamily

    def extract(self, path: str, classification: MediaClassification) -> MetadataFields:
        ...


def read_header(path: str, size: int, minimum: int = 1) -> bytes:
    """Read the first ``size`` bytes of a file.

    Raises:
        CorruptFileError: If fewer than ``minimum`` bytes are available.
        FileProcessingError: If the file cannot be opened.
    """
    try:
        with open(path, "rb") as f:
            header = f.read(size)
    except OSError as e:
        raise map_exception_to_error(e, path, "read_header") from e

    if len(header) < minimum:
        raise create_corrupt_file_error(
            path,
            f"File is truncated ({len(header)} header bytes, expected at least {minimum})",
        )
    return header


def parse_year(value: Any) -> int | None:
    """Extract a year from tag values like ``2003``, ``2003-05-01`` or ``2003:05:01 10:00``."""
    if value is None:
        return None
    match = _YEAR_PREFIX.match(str(value).strip())
    if not match:
        return None
    year = int(match.group("year"))
    return year if 1900 <= year <= 2099 else None
