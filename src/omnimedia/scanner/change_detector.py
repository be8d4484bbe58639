"""Change detection between a discovered file and its prior fingerprint.

The cheap size + mtime comparison decides most files. The content hash is
only recomputed when that comparison disagrees, when the previous attempt
errored, or when the caller asks for strong verification or a forced
rescan.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from omnimedia.config.models import HashSettings
from omnimedia.scanner.hashing import compute_content_hash, hash_kind
from omnimedia.scanner.models import (
    ChangeKind,
    DiscoveredFile,
    FileFingerprint,
    FingerprintStatus,
)
from omnimedia.shared.errors import map_exception_to_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Detection:
    """Result of ``ChangeDetector.detect``.

    Attributes:
        kind: new, modified or unchanged
        fingerprint: Fingerprint to persist. For ``unchanged`` files this is
            the prior fingerprint, which needs no write.
        hashed: Whether the content hash was recomputed
    """

    kind: ChangeKind
    fingerprint: FileFingerprint
    hashed: bool = False

    @property
    def needs_extraction(self) -> bool:
        return self.kind is not ChangeKind.UNCHANGED


class ChangeDetector:
    """Classifies discovered files against prior fingerprints."""

    def __init__(self, hash_settings: HashSettings | None = None) -> None:
        self.hash_settings = hash_settings or HashSettings()

    @staticmethod
    def _cheap_match(file: DiscoveredFile, prior: FileFingerprint) -> bool:
        return file.size == prior.size and file.mtime == prior.mtime

    def detect(
        self,
        file: DiscoveredFile,
        prior: FileFingerprint | None,
        *,
        user_id: str,
        category_id: str,
        strong_hash: bool = False,
        force_rescan: bool = False,
    ) -> Detection:
        """Decide whether ``file`` is new, modified or unchanged.

        Args:
            file: Entry produced by the path walker.
            prior: Stored fingerprint for the same (user, path), if any.
            user_id: Owner of the scan.
            category_id: Category the scan targets.
            strong_hash: Always recompute a full content hash.
            force_rescan: Treat every known file as modified.

        Raises:
            FileProcessingError: If the file cannot be read for hashing.
        """
        if (
            prior is not None
            and prior.status is FingerprintStatus.OK
            and not strong_hash
            and not force_rescan
            and self._cheap_match(file, prior)
        ):
            return Detection(ChangeKind.UNCHANGED, prior)

        try:
            content_hash = compute_content_hash(
                file.path,
                file.size,
                self.hash_settings,
                strong=strong_hash,
            )
        except OSError as e:
            raise map_exception_to_error(e, file.path, "detect_changes") from e

        fingerprint = FileFingerprint(
            user_id=user_id,
            category_id=category_id,
            path=file.path,
            content_hash=content_hash,
            size=file.size,
            mtime=file.mtime,
            last_scanned=time.time(),
        )

        if prior is None:
            return Detection(ChangeKind.NEW, fingerprint, hashed=True)

        if (
            force_rescan
            or prior.status is FingerprintStatus.ERRORED
            or hash_kind(prior.content_hash) != hash_kind(content_hash)
            or prior.content_hash != content_hash
        ):
            return Detection(ChangeKind.MODIFIED, fingerprint, hashed=True)

        # Touched but identical content: refresh size/mtime so the next scan
        # takes the cheap path again.
        logger.debug("Content unchanged after re-hash: %s", file.path)
        return Detection(ChangeKind.UNCHANGED, fingerprint, hashed=True)

    @staticmethod
    def find_deleted(
        prior_fingerprints: Iterable[FileFingerprint],
        seen_paths: set[str],
        root: str,
        recursive: bool = True,
    ) -> Iterator[FileFingerprint]:
        """Yield prior fingerprints under ``root`` that the walk did not see.

        A non-recursive scan only covers the direct children of ``root``, so
        fingerprints deeper in the tree are left alone.
        """
        root = os.path.abspath(root)
        prefix = root.rstrip(os.sep) + os.sep

        for fingerprint in prior_fingerprints:
            if fingerprint.path in seen_paths:
                continue
            if not fingerprint.path.startswith(prefix):
                continue
            if not recursive and os.path.dirname(fingerprint.path) != root:
                continue
            yield fingerprint
