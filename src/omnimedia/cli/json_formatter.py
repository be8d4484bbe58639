"""
JSON envelope for ``--json`` output.

``scan`` and ``classify`` both print one document of the form
``{success, timestamp, command, data, errors, warnings}``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import PurePath
from typing import Any

import orjson

_DUMP_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2


def _encode_extra(obj: Any) -> Any:
    """orjson fallback for scan result types it does not know natively."""
    if isinstance(obj, PurePath):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


def format_json_output(
    success: bool,
    command: str,
    data: Any | None = None,
    errors: list[str] | None = None,
    warnings: list[str] | None = None,
) -> bytes:
    """
    Wrap command output in the JSON envelope.

    Any error message forces ``success`` to false. Data that cannot be
    serialized produces an error envelope instead of raising.

    Example:
        >>> format_json_output(True, "scan", data=result.to_dict())
    """
    errors = errors or []
    warnings = warnings or []
    timestamp = datetime.now(timezone.utc).isoformat()

    envelope = {
        "success": success and not errors,
        "timestamp": timestamp,
        "command": command,
        "data": data,
        "errors": errors,
        "warnings": warnings,
    }

    try:
        return orjson.dumps(envelope, default=_encode_extra, option=_DUMP_OPTIONS)
    except TypeError as e:
        return orjson.dumps(
            {
                "success": False,
                "timestamp": timestamp,
                "command": command,
                "data": None,
                "errors": [f"JSON serialization failed: {e!s}"],
                "warnings": [],
            },
            option=_DUMP_OPTIONS,
        )
