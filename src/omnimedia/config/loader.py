"""Settings loader and singleton manager.

This module handles:
- Configuration file loading from TOML
- Thread-safe singleton pattern for the Settings instance
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from pydantic import ValidationError

from omnimedia.config.models import Settings
from omnimedia.shared.errors import create_config_error

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS = (
    Path("config/omnimedia.toml"),
    Path("omnimedia.toml"),
    Path.home() / ".omnimedia" / "config.toml",
)


class SettingsLoader:
    """Thread-safe singleton manager for Settings.

    Uses double-checked locking to keep the common read path lock-free.
    """

    _instance: Settings | None = None
    _lock: threading.RLock = threading.RLock()

    def get_config(self) -> Settings:
        """Get the global settings instance, loading it if necessary."""
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = load_settings()

        return self._instance

    def reload_config(self, config_path: str | Path | None = None) -> Settings:
        """Reload the global settings instance from configuration files."""
        with self._lock:
            self._instance = load_settings(config_path)

        return self._instance


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from a TOML configuration file or the environment.

    Args:
        config_path: Optional path to a TOML file. If None, the default
            locations are tried before falling back to environment variables.

    Returns:
        Settings instance loaded from the first available source

    Raises:
        ApplicationError: If the configuration file is invalid
    """
    candidates = [Path(config_path)] if config_path else list(DEFAULT_CONFIG_PATHS)

    for candidate in candidates:
        if config_path is None and not candidate.exists():
            continue
        try:
            settings = Settings.from_toml_file(candidate)
        except FileNotFoundError as e:
            raise create_config_error(
                f"Configuration file not found: {candidate}",
                config_key="config_path",
                operation="load_settings",
                original_error=e,
            ) from e
        except (ValidationError, ValueError) as e:
            raise create_config_error(
                f"Invalid configuration in {candidate}: {e}",
                config_key="config_path",
                operation="load_settings",
                original_error=e,
            ) from e
        logger.debug("Loaded configuration from %s", candidate)
        return settings

    return Settings()


_loader = SettingsLoader()


def get_config() -> Settings:
    """Get the global settings instance (thread-safe)."""
    return _loader.get_config()


def reload_config(config_path: str | Path | None = None) -> Settings:
    """Reload the global settings instance from configuration files."""
    return _loader.reload_config(config_path)


__all__ = [
    "SettingsLoader",
    "get_config",
    "load_settings",
    "reload_config",
]
