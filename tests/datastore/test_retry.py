"""Tests for datastore retry behaviour."""

from __future__ import annotations

import pytest

from omnimedia.config.models import ScanSettings
from omnimedia.datastore.retry import RetryConfiguration, call_with_retry
from omnimedia.shared.errors import (
    DatastoreUnavailableError,
    ErrorCode,
    InfrastructureError,
    create_datastore_unavailable_error,
)


def _config(attempts: int = 3) -> RetryConfiguration:
    return RetryConfiguration(max_attempts=attempts, min_wait=0, max_wait=0)


class TestCallWithRetry:
    def test_succeeds_after_transient_failures(self) -> None:
        calls = []

        def flaky(value: str) -> str:
            calls.append(value)
            if len(calls) < 3:
                raise create_datastore_unavailable_error("busy", operation="test")
            return value.upper()

        assert call_with_retry(_config(), flaky, "ok") == "OK"
        assert len(calls) == 3

    def test_reraises_last_error_when_exhausted(self) -> None:
        calls = 0

        def down() -> None:
            nonlocal calls
            calls += 1
            raise create_datastore_unavailable_error("down", operation="test")

        with pytest.raises(DatastoreUnavailableError):
            call_with_retry(_config(attempts=2), down)

        assert calls == 2

    def test_other_errors_fail_fast(self) -> None:
        calls = 0

        def broken() -> None:
            nonlocal calls
            calls += 1
            raise InfrastructureError(ErrorCode.DATASTORE_ERROR, "constraint failed")

        with pytest.raises(InfrastructureError):
            call_with_retry(_config(), broken)

        assert calls == 1


class TestRetryConfiguration:
    def test_from_settings(self) -> None:
        config = RetryConfiguration.from_settings(
            ScanSettings(write_retries=5, retry_min_wait_seconds=0.5, retry_max_wait_seconds=2)
        )

        assert config.max_attempts == 5
        assert config.min_wait == 0.5
        assert config.max_wait == 2
