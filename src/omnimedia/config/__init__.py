"""Configuration Module

Unified access to configuration models and settings management:
- Settings: Main configuration facade
- Loader functions: get_config, load_settings, reload_config
- Domain models: Scan, Filter, Hash, Extraction, Datastore, Logging settings
"""

from __future__ import annotations

from .loader import get_config, load_settings, reload_config
from .models import (
    DatastoreSettings,
    ExtractionSettings,
    FilterSettings,
    HashSettings,
    LoggingSettings,
    ScanSettings,
    Settings,
)

__all__ = [
    "DatastoreSettings",
    "ExtractionSettings",
    "FilterSettings",
    "HashSettings",
    "LoggingSettings",
    "ScanSettings",
    "Settings",
    "get_config",
    "load_settings",
    "reload_config",
]
