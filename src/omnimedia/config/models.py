"""Configuration models for the library scanner.

Each configuration domain is a Pydantic model; ``Settings`` is the
``pydantic-settings`` facade that consolidates them and reads overrides
from ``OMNIMEDIA_`` environment variables.
"""

from __future__ import annotations

import logging
from pathlib import Path

import toml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from omnimedia.config.validators import (
    validate_extensions_list,
    validate_log_level,
    validate_patterns_list,
)
from omnimedia.shared.constants import (
    ExclusionPatterns,
    ExtractionDefaults,
    HashDefaults,
    LogConfig,
    MediaExtensions,
    ScanDefaults,
)

logger = logging.getLogger(__name__)


class FilterSettings(BaseModel):
    """Rules the path walker applies inline."""

    allowed_extensions: list[str] = Field(
        default=list(MediaExtensions.ALL),
        description="Extensions of files the walker yields",
    )
    excluded_filename_patterns: list[str] = Field(
        default_factory=lambda: list(ExclusionPatterns.FILENAME_PATTERNS),
        description="Glob patterns of files that are never yielded",
    )
    excluded_dir_patterns: list[str] = Field(
        default_factory=lambda: list(ExclusionPatterns.DIRECTORY_PATTERNS),
        description="Glob patterns of directories that are never entered",
    )
    skip_hidden: bool = Field(
        default=True,
        description="Skip files and directories starting with '.'",
    )
    follow_symlinks: bool = Field(
        default=True,
        description="Descend into symlinked directories (cycles are detected)",
    )

    @field_validator("allowed_extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        return validate_extensions_list(v)

    @field_validator("excluded_filename_patterns", "excluded_dir_patterns")
    @classmethod
    def validate_patterns(cls, v: list[str]) -> list[str]:
        return validate_patterns_list(v)


class ScanSettings(BaseModel):
    """Worker pool, batching and progress settings."""

    default_parallel: int = Field(
        default=ScanDefaults.DEFAULT_PARALLEL,
        ge=ScanDefaults.MIN_PARALLEL,
        le=ScanDefaults.MAX_PARALLEL,
    )
    queue_size_per_worker: int = Field(
        default=ScanDefaults.QUEUE_SIZE_PER_WORKER,
        gt=0,
        description="Walker feed capacity per worker",
    )
    batch_size: int = Field(
        default=ScanDefaults.BATCH_SIZE,
        gt=0,
        description="Entries accumulated before a datastore write",
    )
    flush_interval_seconds: float = Field(
        default=ScanDefaults.FLUSH_INTERVAL_SECONDS,
        gt=0,
        description="Maximum age of a pending batch before it is flushed",
    )
    progress_interval_seconds: float = Field(
        default=ScanDefaults.PROGRESS_INTERVAL_SECONDS,
        ge=0,
        description="Minimum delay between two progress callbacks",
    )
    write_retries: int = Field(
        default=ScanDefaults.WRITE_RETRIES,
        ge=1,
        description="Attempts for a batch write before the scan fails",
    )
    retry_min_wait_seconds: float = Field(default=ScanDefaults.RETRY_MIN_WAIT_SECONDS, ge=0)
    retry_max_wait_seconds: float = Field(default=ScanDefaults.RETRY_MAX_WAIT_SECONDS, ge=0)
    filter_config: FilterSettings = Field(
        default_factory=FilterSettings,
        alias="filter",
    )

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def check_retry_window(self) -> ScanSettings:
        if self.retry_max_wait_seconds < self.retry_min_wait_seconds:
            msg = "retry_max_wait_seconds must be >= retry_min_wait_seconds"
            raise ValueError(msg)
        return self


class HashSettings(BaseModel):
    """Fingerprint hashing policy.

    Files up to ``full_hash_max_mb`` get a full SHA-256. Larger files get a
    sampled hash over their size and head/middle/tail chunks.
    """

    full_hash_max_mb: int = Field(default=HashDefaults.FULL_HASH_MAX_MB, ge=0)
    sample_chunk_kb: int = Field(default=HashDefaults.SAMPLE_CHUNK_KB, gt=0)

    @property
    def full_hash_max_bytes(self) -> int:
        return self.full_hash_max_mb * 1024 * 1024

    @property
    def sample_chunk_bytes(self) -> int:
        return self.sample_chunk_kb * 1024


class ExtractionSettings(BaseModel):
    """Metadata extractor settings."""

    timeout_seconds: float = Field(
        default=ExtractionDefaults.TIMEOUT_SECONDS,
        gt=0,
        description="Per-file extraction timeout",
    )
    use_ffprobe: bool = Field(default=True, description="Probe videos with ffprobe")
    ffprobe_path: str | None = Field(
        default=None,
        description="Explicit ffprobe binary, resolved from PATH when unset",
    )


class DatastoreSettings(BaseModel):
    """SQLite datastore location used by the CLI."""

    db_path: str = Field(default="data/omnimedia.db")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field(default=LogConfig.DEFAULT_LEVEL)
    file: str | None = Field(default=None, description="Optional JSON log file")
    rich_console: bool = Field(default=True)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        return validate_log_level(v)


class Settings(BaseSettings):
    """Settings facade providing unified configuration access."""

    model_config = SettingsConfigDict(
        env_prefix="OMNIMEDIA_",
        env_nested_delimiter="__",
        env_ignore_empty=True,
        extra="ignore",
    )

    scan: ScanSettings = Field(default_factory=ScanSettings)
    hashing: HashSettings = Field(default_factory=HashSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    datastore: DatastoreSettings = Field(default_factory=DatastoreSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_toml_file(cls, file_path: str | Path) -> Settings:
        """Load settings from a TOML file; the environment fills fields it omits."""
        file_path = Path(file_path)
        if not file_path.exists():
            msg = f"Configuration file not found: {file_path}"
            raise FileNotFoundError(msg)

        raw_config = toml.load(file_path)
        return cls(**raw_config)

    def to_toml_file(self, file_path: str | Path) -> None:
        """Save settings to a TOML file."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.model_dump(exclude_none=True, by_alias=True)

        with open(file_path, "w", encoding="utf-8") as f:
            toml.dump(config_dict, f)
