"""Retry logic for datastore operations with exponential backoff.

Only ``DatastoreUnavailableError`` is retried. Everything else (bad data,
schema errors) fails fast.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from omnimedia.config.models import ScanSettings
from omnimedia.shared.errors import DatastoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfiguration:
    """Configuration class for retry behavior."""

    def __init__(
        self,
        max_attempts: int,
        min_wait: float,
        max_wait: float,
        multiplier: float = 1.0,
    ) -> None:
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait
        self.multiplier = multiplier

    @classmethod
    def from_settings(cls, settings: ScanSettings) -> RetryConfiguration:
        return cls(
            max_attempts=settings.write_retries,
            min_wait=settings.retry_min_wait_seconds,
            max_wait=settings.retry_max_wait_seconds,
        )


def create_retrying(config: RetryConfiguration) -> Retrying:
    """Create a tenacity ``Retrying`` controller for datastore calls.

    The last DatastoreUnavailableError is re-raised once attempts run out.
    """
    return Retrying(
        wait=wait_exponential(
            multiplier=config.multiplier,
            min=config.min_wait,
            max=config.max_wait,
        ),
        stop=stop_after_attempt(config.max_attempts),
        retry=retry_if_exception_type(DatastoreUnavailableError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def call_with_retry(
    config: RetryConfiguration,
    func: Callable[..., T],
    *args: object,
    **kwargs: object,
) -> T:
    """Call ``func`` and retry it while the datastore is unavailable.

    Example:
        >>> call_with_retry(config, store.batch_write, entries)
    """
    return create_retrying(config)(func, *args, **kwargs)
