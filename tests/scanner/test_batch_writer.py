"""Tests for the batching writer."""

from __future__ import annotations

import threading
import time

import pytest

from omnimedia.config.models import ScanSettings
from omnimedia.datastore.base import WriteEntry
from omnimedia.datastore.memory import InMemoryDatastore
from omnimedia.scanner.batch_writer import BatchWriter
from omnimedia.scanner.models import FileFingerprint
from omnimedia.shared.errors import (
    DatastoreUnavailableError,
    ErrorCode,
    InfrastructureError,
)


def _entry(index: int) -> WriteEntry:
    return WriteEntry(
        FileFingerprint(
            user_id="u1",
            category_id="tv",
            path=f"/library/file{index}.mkv",
            content_hash=f"sha256:{index}",
            size=index,
            mtime=float(index),
            last_scanned=0.0,
        )
    )


def _settings(**overrides) -> ScanSettings:
    values = {
        "batch_size": 3,
        "flush_interval_seconds": 60,
        "write_retries": 3,
        "retry_min_wait_seconds": 0,
        "retry_max_wait_seconds": 0,
    }
    values.update(overrides)
    return ScanSettings(**values)


class TestBatchWriter:
    """Size and interval triggered flushing."""

    def test_flushes_when_batch_is_full(self) -> None:
        store = InMemoryDatastore()
        writer = BatchWriter(store, _settings())

        for i in range(7):
            writer.add(_entry(i))

        assert store.batch_write_calls == 2
        assert store.fingerprint_count == 6
        assert writer.pending == 1

        writer.close()
        assert store.fingerprint_count == 7
        assert writer.written_count == 7
        assert writer.flush_count == 3

    def test_flushes_on_interval(self) -> None:
        store = InMemoryDatastore()
        writer = BatchWriter(store, _settings(batch_size=100, flush_interval_seconds=0.05))
        writer.start()
        try:
            writer.add(_entry(1))
            deadline = time.monotonic() + 2
            while store.fingerprint_count == 0 and time.monotonic() < deadline:
                time.sleep(0.01)
            assert store.fingerprint_count == 1
        finally:
            writer.close()

    def test_on_flush_receives_batch_size(self) -> None:
        flushed: list[int] = []
        writer = BatchWriter(InMemoryDatastore(), _settings(), on_flush=flushed.append)

        for i in range(4):
            writer.add(_entry(i))
        writer.close()

        assert flushed == [3, 1]

    def test_empty_flush_writes_nothing(self) -> None:
        store = InMemoryDatastore()
        writer = BatchWriter(store, _settings())

        assert writer.flush() == 0
        assert store.batch_write_calls == 0

    def test_transient_failure_is_retried(self) -> None:
        store = InMemoryDatastore()
        store.fail_writes = 2
        writer = BatchWriter(store, _settings(batch_size=1))

        writer.add(_entry(1))

        assert store.batch_write_calls == 3
        assert store.fingerprint_count == 1
        assert writer.error is None

    def test_exhausted_retries_disable_the_writer(self) -> None:
        store = InMemoryDatastore()
        store.fail_writes = -1
        writer = BatchWriter(store, _settings(batch_size=1))

        with pytest.raises(DatastoreUnavailableError):
            writer.add(_entry(1))

        assert store.batch_write_calls == 3
        assert isinstance(writer.error, DatastoreUnavailableError)
        with pytest.raises(DatastoreUnavailableError):
            writer.add(_entry(2))

    def test_non_transient_failure_is_not_retried(self, mocker) -> None:
        store = InMemoryDatastore()
        mocker.patch.object(
            store,
            "batch_write",
            side_effect=InfrastructureError(ErrorCode.DATASTORE_ERROR, "constraint failed"),
        )
        writer = BatchWriter(store, _settings(batch_size=1))

        with pytest.raises(InfrastructureError):
            writer.add(_entry(1))

        assert store.batch_write.call_count == 1

    def test_only_one_flush_in_flight(self) -> None:
        in_flight = 0
        peak = 0
        guard = threading.Lock()

        class SlowStore(InMemoryDatastore):
            def batch_write(self, entries):
                nonlocal in_flight, peak
                with guard:
                    in_flight += 1
                    peak = max(peak, in_flight)
                time.sleep(0.01)
                super().batch_write(entries)
                with guard:
                    in_flight -= 1

        store = SlowStore()
        writer = BatchWriter(store, _settings(batch_size=1))
        threads = [
            threading.Thread(target=lambda i=i: writer.add(_entry(i))) for i in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        writer.close()

        assert peak == 1
        assert store.fingerprint_count == 8
