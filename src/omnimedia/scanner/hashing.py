"""Content hashing for file fingerprints.

Two hash kinds are produced, each stored with its prefix so fingerprints
computed under different policies are never mistaken for each other:

- ``sha256:<hex>`` over the whole file;
- ``sha256-sampled:<hex>`` over the file size plus a head, middle and tail
  chunk, used for files above the full-hash size limit.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from omnimedia.config.models import HashSettings
from omnimedia.shared.constants import HashDefaults


def hash_kind(content_hash: str) -> str:
    """Return the prefix of a stored hash (``sha256`` or ``sha256-sampled``)."""
    return content_hash.split(":", 1)[0]


def full_file_hash(path: str | Path, chunk_size: int = HashDefaults.READ_CHUNK_BYTES) -> str:
    """Compute the SHA-256 of the whole file, reading it in chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return f"{HashDefaults.FULL_PREFIX}:{digest.hexdigest()}"


def sampled_file_hash(path: str | Path, size: int, chunk_size: int) -> str:
    """Compute a SHA-256 over the size and three chunks of the file.

    Changes confined to the bytes between the sampled chunks are not
    detected; ``strong_hash`` scans use ``full_file_hash`` instead.
    """
    digest = hashlib.sha256()
    digest.update(str(size).encode())

    offsets = (0, max(0, size // 2 - chunk_size // 2), max(0, size - chunk_size))
    with open(path, "rb") as f:
        for offset in offsets:
            f.seek(offset)
            digest.update(f.read(chunk_size))

    return f"{HashDefaults.SAMPLED_PREFIX}:{digest.hexdigest()}"


def compute_content_hash(
    path: str | Path,
    size: int,
    settings: HashSettings,
    *,
    strong: bool = False,
) -> str:
    """Hash a file according to the configured policy.

    Args:
        path: File to hash.
        size: File size in bytes, as seen by the walker.
        settings: Hash policy (full-hash size limit, sample chunk size).
        strong: Always hash the full content regardless of size.
    """
    if strong or size <= settings.full_hash_max_bytes:
        return full_file_hash(path)
    return sampled_file_hash(path, size, settings.sample_chunk_bytes)
