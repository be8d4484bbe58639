"""Tests for content hashing."""

from __future__ import annotations

import hashlib
from pathlib import Path

from omnimedia.config.models import HashSettings
from omnimedia.scanner.hashing import (
    compute_content_hash,
    full_file_hash,
    hash_kind,
    sampled_file_hash,
)


class TestFullFileHash:
    def test_matches_sha256_of_content(self, temp_dir: Path) -> None:
        target = temp_dir / "a.mkv"
        target.write_bytes(b"hello world")

        expected = hashlib.sha256(b"hello world").hexdigest()

        assert full_file_hash(target, chunk_size=4) == f"sha256:{expected}"

    def test_kind(self, temp_dir: Path) -> None:
        target = temp_dir / "a.mkv"
        target.write_bytes(b"x")
        assert hash_kind(full_file_hash(target)) == "sha256"


class TestSampledFileHash:
    """Sampled hashes cover size plus head, middle and tail."""

    def test_detects_change_in_sampled_chunk(self, temp_dir: Path) -> None:
        target = temp_dir / "big.mkv"
        data = bytearray(b"a" * 4096)
        target.write_bytes(bytes(data))
        before = sampled_file_hash(target, len(data), chunk_size=256)

        data[-1:] = b"b"
        target.write_bytes(bytes(data))

        assert sampled_file_hash(target, len(data), chunk_size=256) != before

    def test_change_between_chunks_is_not_seen(self, temp_dir: Path) -> None:
        target = temp_dir / "big.mkv"
        data = bytearray(b"a" * 4096)
        target.write_bytes(bytes(data))
        before = sampled_file_hash(target, len(data), chunk_size=256)

        data[1000] = ord("z")
        target.write_bytes(bytes(data))

        assert sampled_file_hash(target, len(data), chunk_size=256) == before

    def test_kind(self, temp_dir: Path) -> None:
        target = temp_dir / "a.mkv"
        target.write_bytes(b"x" * 10)
        assert hash_kind(sampled_file_hash(target, 10, chunk_size=4)) == "sha256-sampled"


class TestComputeContentHash:
    """Policy selection between full and sampled hashing."""

    def test_small_file_gets_full_hash(self, temp_dir: Path) -> None:
        target = temp_dir / "a.mkv"
        target.write_bytes(b"x" * 100)

        result = compute_content_hash(target, 100, HashSettings())

        assert result.startswith("sha256:")

    def test_large_file_gets_sampled_hash(self, temp_dir: Path) -> None:
        target = temp_dir / "a.mkv"
        target.write_bytes(b"x" * 100)
        settings = HashSettings(full_hash_max_mb=0, sample_chunk_kb=1)

        result = compute_content_hash(target, 100, settings)

        assert result.startswith("sha256-sampled:")

    def test_strong_forces_full_hash(self, temp_dir: Path) -> None:
        target = temp_dir / "a.mkv"
        target.write_bytes(b"x" * 100)
        settings = HashSettings(full_hash_max_mb=0)

        result = compute_content_hash(target, 100, settings, strong=True)

        assert result == full_file_hash(target)
