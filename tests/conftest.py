"""
Pytest configuration and shared fixtures for the library scanner tests.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from omnimedia.config.models import (
    ExtractionSettings,
    ScanSettings,
    Settings,
)
from omnimedia.datastore.memory import InMemoryDatastore

# Smallest header the video extractor accepts for .mp4
MP4_HEADER = b"\x00\x00\x00\x18ftypmp42"


def write_mp4(path: Path, payload: bytes = b"frames") -> Path:
    """Write a file that passes the mp4 header check."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(MP4_HEADER + b"\x00" * 16 + payload)
    return path


def write_pdf(path: Path, payload: bytes = b"pages") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"%PDF-1.4\n" + payload)
    return path


def set_mtime(path: Path, mtime: float) -> None:
    os.utime(path, (mtime, mtime))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to the temporary directory.
    """
    with tempfile.TemporaryDirectory() as temp_path:
        yield Path(temp_path)


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with short intervals, no retry backoff and no ffprobe."""
    return Settings(
        scan=ScanSettings(
            batch_size=5,
            flush_interval_seconds=0.05,
            progress_interval_seconds=0.01,
            write_retries=3,
            retry_min_wait_seconds=0,
            retry_max_wait_seconds=0,
        ),
        extraction=ExtractionSettings(use_ffprobe=False, timeout_seconds=5),
    )


@pytest.fixture
def datastore() -> InMemoryDatastore:
    return InMemoryDatastore()


@pytest.fixture
def tv_library(temp_dir: Path) -> Path:
    """Library with three episodes named ``ShowName.S01E02.mp4``."""
    root = temp_dir / "library"
    for season_dir in ("disc1", "disc2", "disc3"):
        write_mp4(root / season_dir / "ShowName.S01E02.mp4", payload=season_dir.encode())
    return root
