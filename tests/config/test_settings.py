"""Tests for settings models and loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from omnimedia.config.loader import SettingsLoader, load_settings
from omnimedia.config.models import (
    FilterSettings,
    LoggingSettings,
    ScanSettings,
    Settings,
)
from omnimedia.shared.constants import ScanDefaults
from omnimedia.shared.errors import ApplicationError, ErrorCode


class TestSettingsModels:
    def test_defaults(self) -> None:
        settings = Settings()

        assert settings.scan.batch_size == ScanDefaults.BATCH_SIZE
        assert settings.scan.default_parallel == ScanDefaults.DEFAULT_PARALLEL
        assert settings.hashing.full_hash_max_bytes == 64 * 1024 * 1024
        assert ".mkv" in settings.scan.filter_config.allowed_extensions

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OMNIMEDIA_SCAN__BATCH_SIZE", "10")
        monkeypatch.setenv("OMNIMEDIA_LOGGING__LEVEL", "debug")

        settings = Settings()

        assert settings.scan.batch_size == 10
        assert settings.logging.level == "DEBUG"

    def test_extensions_are_normalised(self) -> None:
        assert FilterSettings(allowed_extensions=[".MKV", ".mp4"]).allowed_extensions == [
            ".mkv",
            ".mp4",
        ]

    def test_extension_without_dot_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            FilterSettings(allowed_extensions=["mkv"])

    def test_parallel_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ScanSettings(default_parallel=17)

    def test_retry_window(self) -> None:
        with pytest.raises(ValidationError):
            ScanSettings(retry_min_wait_seconds=5, retry_max_wait_seconds=1)

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            LoggingSettings(level="LOUD")


class TestTomlFiles:
    def test_round_trip(self, temp_dir: Path) -> None:
        original = Settings(
            scan=ScanSettings(batch_size=7, filter=FilterSettings(skip_hidden=False))
        )
        path = temp_dir / "nested" / "omnimedia.toml"

        original.to_toml_file(path)
        loaded = Settings.from_toml_file(path)

        assert loaded.scan.batch_size == 7
        assert loaded.scan.filter_config.skip_hidden is False
        assert loaded.scan.filter_config.allowed_extensions == (
            original.scan.filter_config.allowed_extensions
        )

    def test_missing_file(self, temp_dir: Path) -> None:
        with pytest.raises(FileNotFoundError):
            Settings.from_toml_file(temp_dir / "absent.toml")


class TestLoadSettings:
    def test_explicit_path(self, temp_dir: Path) -> None:
        path = temp_dir / "omnimedia.toml"
        path.write_text("[scan]\nbatch_size = 12\n\n[extraction]\nuse_ffprobe = false\n")

        settings = load_settings(path)

        assert settings.scan.batch_size == 12
        assert settings.extraction.use_ffprobe is False

    def test_invalid_values_raise_config_error(self, temp_dir: Path) -> None:
        path = temp_dir / "omnimedia.toml"
        path.write_text("[scan]\nbatch_size = 0\n")

        with pytest.raises(ApplicationError) as exc_info:
            load_settings(path)

        assert exc_info.value.code is ErrorCode.CONFIG_ERROR

    def test_missing_explicit_path_raises_config_error(self, temp_dir: Path) -> None:
        with pytest.raises(ApplicationError):
            load_settings(temp_dir / "absent.toml")

    def test_default_locations(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        candidate = temp_dir / "omnimedia.toml"
        monkeypatch.setattr(
            "omnimedia.config.loader.DEFAULT_CONFIG_PATHS",
            (temp_dir / "absent.toml", candidate),
        )

        assert load_settings().scan.batch_size == ScanDefaults.BATCH_SIZE

        candidate.write_text("[scan]\nbatch_size = 3\n")
        assert load_settings().scan.batch_size == 3

    def test_loader_caches_until_reload(
        self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("omnimedia.config.loader.DEFAULT_CONFIG_PATHS", ())
        loader = SettingsLoader()

        first = loader.get_config()
        assert loader.get_config() is first

        path = temp_dir / "omnimedia.toml"
        path.write_text("[scan]\nbatch_size = 9\n")
        reloaded = loader.reload_config(path)

        assert reloaded is not first
        assert loader.get_config().scan.batch_size == 9
