"""Path walker for the library scanner.

Directory traversal uses os.scandir(), whose DirEntry objects cache file
type and stat information, and yields files lazily so very large libraries
are never held in memory. Directory symlinks are followed with cycle
detection on (device, inode).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Callable

from omnimedia.config.models import FilterSettings
from omnimedia.scanner.extension_filter import WalkFilter
from omnimedia.scanner.models import DiscoveredFile, WalkWarning
from omnimedia.shared.errors import (
    ErrorCode,
    create_path_not_found_error,
    create_permission_denied_error,
)

logger = logging.getLogger(__name__)

WarningCallback = Callable[[WalkWarning], None]


def check_root(root_path: str | Path) -> Path:
    """Validate that ``root_path`` is a readable directory.

    Returns:
        The absolute root path.

    Raises:
        PathNotFoundError: If the root does not exist or is not a directory.
        PermissionDeniedError: If the root cannot be listed.
    """
    root = Path(root_path).expanduser()

    if not root.exists():
        raise create_path_not_found_error(str(root), operation="check_root")
    if not root.is_dir():
        raise create_path_not_found_error(str(root), operation="check_root")

    try:
        with os.scandir(root):
            pass
    except PermissionError as e:
        raise create_permission_denied_error(
            str(root),
            operation="check_root",
            original_error=e,
        ) from e
    except FileNotFoundError as e:
        raise create_path_not_found_error(
            str(root),
            operation="check_root",
            original_error=e,
        ) from e

    return root.absolute()


class PathWalker:
    """Enumerates media files under a root directory.

    Args:
        filter_settings: Extension allowlist and denylist configuration.
    """

    def __init__(self, filter_settings: FilterSettings | None = None) -> None:
        self.filter_settings = filter_settings or FilterSettings()
        self.walk_filter = WalkFilter(self.filter_settings)

    def walk(
        self,
        root_path: str | Path,
        recursive: bool = True,
        on_warning: WarningCallback | None = None,
    ) -> Iterator[DiscoveredFile]:
        """Validate the root and return a lazy iterator over its media files.

        The root is checked eagerly so an inaccessible root raises here,
        before any file is produced. Every call returns a fresh iterator.

        Args:
            root_path: Directory to scan.
            recursive: Descend into sub-directories.
            on_warning: Receives non-fatal walk warnings (symlink cycles,
                unreadable sub-directories).

        Raises:
            PathNotFoundError: If the root does not exist.
            PermissionDeniedError: If the root cannot be read.

        Example:
            >>> for discovered in PathWalker().walk("/media/tv"):
            ...     print(discovered.path, discovered.size)
        """
        root = check_root(root_path)
        return self._iter_files(root, recursive, on_warning)

    def _warn(
        self,
        on_warning: WarningCallback | None,
        path: str,
        reason: str,
        code: ErrorCode,
    ) -> None:
        logger.warning("%s: %s", reason, path)
        if on_warning is not None:
            on_warning(WalkWarning(path=path, reason=reason, code=code.value))

    def _iter_files(
        self,
        root: Path,
        recursive: bool,
        on_warning: WarningCallback | None,
    ) -> Iterator[DiscoveredFile]:
        root_stat = root.stat()
        visited: set[tuple[int, int]] = {(root_stat.st_dev, root_stat.st_ino)}
        pending: list[str] = [str(root)]

        while pending:
            directory = pending.pop()
            subdirectories: list[str] = []

            try:
                with os.scandir(directory) as entries:
                    for entry in entries:
                        discovered = self._handle_entry(
                            entry,
                            recursive,
                            visited,
                            subdirectories,
                            on_warning,
                        )
                        if discovered is not None:
                            yield discovered
            except PermissionError:
                self._warn(
                    on_warning,
                    directory,
                    "Permission denied reading directory",
                    ErrorCode.DIRECTORY_UNREADABLE,
                )
            except OSError as e:
                self._warn(
                    on_warning,
                    directory,
                    f"Error reading directory: {e}",
                    ErrorCode.DIRECTORY_UNREADABLE,
                )

            # Reversed so sub-directories are visited in listing order
            pending.extend(reversed(subdirectories))

    def _handle_entry(
        self,
        entry: os.DirEntry,
        recursive: bool,
        visited: set[tuple[int, int]],
        subdirectories: list[str],
        on_warning: WarningCallback | None,
    ) -> DiscoveredFile | None:
        try:
            if entry.is_dir(follow_symlinks=self.filter_settings.follow_symlinks):
                if not recursive or self.walk_filter.should_skip_directory(entry.name):
                    return None
                stat = entry.stat(follow_symlinks=True)
                key = (stat.st_dev, stat.st_ino)
                if key in visited:
                    self._warn(
                        on_warning,
                        entry.path,
                        "Directory already visited, symlink cycle skipped",
                        ErrorCode.SYMLINK_CYCLE,
                    )
                    return None
                visited.add(key)
                subdirectories.append(entry.path)
                return None

            if not entry.is_file() or not self.walk_filter.should_yield_file(entry.name):
                return None

            stat = entry.stat()
        except OSError as e:
            self._warn(
                on_warning,
                entry.path,
                f"Cannot stat entry: {e}",
                ErrorCode.DIRECTORY_UNREADABLE,
            )
            return None

        return DiscoveredFile(
            path=os.path.abspath(entry.path),
            size=stat.st_size,
            mtime=stat.st_mtime,
            extension=os.path.splitext(entry.name)[1].lower(),
        )
