"""Extension and denylist filtering for the path walker.

This module provides configuration-driven filters that decide which
directory entries the walker yields or descends into.
"""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Iterable
from pathlib import PurePath
from typing import Callable

from omnimedia.config.models import FilterSettings

logger = logging.getLogger(__name__)


def create_media_extension_filter(
    extensions: Iterable[str],
    case_sensitive: bool = False,
) -> Callable[[str], bool]:
    """Create a media file extension filter function.

    Args:
        extensions: File extensions to accept, including the dot
            (e.g., ['.mkv', '.mp4']).
        case_sensitive: Whether to perform case-sensitive matching.

    Returns:
        A filter function that takes a file name or path and returns True if
        the file has an accepted extension.

    Example:
        >>> filter_func = create_media_extension_filter([".mkv", ".mp4"])
        >>> filter_func("/path/to/movie.MKV")
        True
        >>> filter_func("/path/to/notes.txt")
        False
    """
    ext_set = set(extensions) if case_sensitive else {ext.lower() for ext in extensions}

    if not ext_set:
        logger.warning("No media extensions provided, filter will reject all files")
        return lambda _: False

    def filter_func(file_name: str) -> bool:
        extension = PurePath(file_name).suffix
        if not extension:
            return False
        if case_sensitive:
            return extension in ext_set
        return extension.lower() in ext_set

    return filter_func


def _matches_any(name: str, patterns: Iterable[str]) -> bool:
    lowered = name.lower()
    return any(fnmatch.fnmatch(lowered, pattern.lower()) for pattern in patterns)


class WalkFilter:
    """Denylist and allowlist rules applied inline by the walker.

    Args:
        settings: Filter configuration (extensions, excluded patterns,
            hidden-file handling)
    """

    def __init__(self, settings: FilterSettings | None = None) -> None:
        self.settings = settings or FilterSettings()
        self._extension_filter = create_media_extension_filter(
            self.settings.allowed_extensions,
        )

    def should_skip_directory(self, name: str) -> bool:
        """Return True if the walker must not descend into ``name``."""
        if self.settings.skip_hidden and name.startswith("."):
            return True
        return _matches_any(name, self.settings.excluded_dir_patterns)

    def should_yield_file(self, name: str) -> bool:
        """Return True if a file called ``name`` is a media file worth scanning."""
        if self.settings.skip_hidden and name.startswith("."):
            return False
        if _matches_any(name, self.settings.excluded_filename_patterns):
            logger.debug("Excluded %s by filename pattern", name)
            return False
        return self._extension_filter(name)
