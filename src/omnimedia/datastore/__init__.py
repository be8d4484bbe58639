"""Persistence for fingerprints, media records and scan jobs."""

from __future__ import annotations

from .base import JobStore, ScanDatastore, WriteEntry
from .memory import InMemoryDatastore
from .sqlite import SQLiteDatastore

__all__ = [
    "InMemoryDatastore",
    "JobStore",
    "SQLiteDatastore",
    "ScanDatastore",
    "WriteEntry",
]
