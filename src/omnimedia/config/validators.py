"""Common validation functions for configuration fields.

Reusable validators for the Pydantic models of the configuration system.
"""

from __future__ import annotations


def validate_extensions_list(extensions: list[str]) -> list[str]:
    """Validate and normalize a list of file extensions.

    Args:
        extensions: List of file extensions to validate

    Returns:
        The extensions, lower-cased

    Raises:
        ValueError: If any extension doesn't start with a dot

    Example:
        >>> validate_extensions_list([".MKV", ".mp4"])
        ['.mkv', '.mp4']
    """
    invalid_exts = [ext for ext in extensions if not ext.startswith(".")]
    if invalid_exts:
        msg = f"Extensions {invalid_exts} must start with a dot"
        raise ValueError(msg)

    return [ext.lower() for ext in extensions]


def validate_patterns_list(patterns: list[str]) -> list[str]:
    """Validate that every pattern is a non-empty string.

    Raises:
        ValueError: If any pattern is empty or only whitespace
    """
    invalid = [p for p in patterns if not isinstance(p, str) or not p.strip()]
    if invalid:
        msg = f"Patterns must be non-empty strings, got {invalid}"
        raise ValueError(msg)
    return patterns


def validate_log_level(level: str) -> str:
    """Validate a logging level name.

    Raises:
        ValueError: If the level is not a standard logging level
    """
    normalized = level.upper()
    if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        msg = f"Invalid log level: {level}"
        raise ValueError(msg)
    return normalized
