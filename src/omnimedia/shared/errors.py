"""OmniMedia Error Handling Module

This module defines the error handling system for the library scanner,
providing structured error classes with context information.

The error hierarchy follows these principles:
- One Source of Truth: All error codes are defined in ErrorCode enum
- Structured Context: ErrorContext provides additional information
- Fatal vs recoverable: ScanFatalError aborts a scan, FileProcessingError
  is recorded against a single file and the scan continues
- Proper Exception Chaining: Original exceptions are preserved
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

# Type alias for primitive context values (str, int, float, bool only)
PrimitiveContextValue = Union[str, int, float, bool]

# Default keys to mask in safe_dict for PII protection
SAFE_DICT_MASK_KEYS: tuple[str, ...] = ("user_id",)


class ErrorCode(str, Enum):
    """Error codes for the scanner.

    This enum serves as the single source of truth for all error codes
    used throughout the application.
    """

    # Root-level (fatal)
    PATH_NOT_FOUND = "PATH_NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Per-file (recoverable)
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    CORRUPT_FILE = "CORRUPT_FILE"
    EXTRACTION_TIMEOUT = "EXTRACTION_TIMEOUT"
    FILE_READ_ERROR = "FILE_READ_ERROR"
    FILE_VANISHED = "FILE_VANISHED"

    # Datastore
    DATASTORE_UNAVAILABLE = "DATASTORE_UNAVAILABLE"
    DATASTORE_ERROR = "DATASTORE_ERROR"

    # Walk warnings
    SYMLINK_CYCLE = "SYMLINK_CYCLE"
    DIRECTORY_UNREADABLE = "DIRECTORY_UNREADABLE"

    # Configuration / validation
    CONFIG_ERROR = "CONFIG_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Jobs
    JOB_NOT_FOUND = "JOB_NOT_FOUND"

    # Application
    SCANNER_ERROR = "SCANNER_ERROR"
    WORKER_POOL_ERROR = "WORKER_POOL_ERROR"


def _coerce_primitives(value: Any | None) -> dict[str, PrimitiveContextValue] | None:
    """Coerce additional_data values to primitives.

    Converts Path, Enum, Decimal to primitive types.

    Raises:
        TypeError: If value is not a dict or contains unconvertible types
    """
    if value is None:
        return None

    if not isinstance(value, dict):
        error_msg = f"additional_data must be dict, got {type(value).__name__}"
        raise TypeError(error_msg)

    coerced: dict[str, PrimitiveContextValue] = {}
    for key, val in value.items():
        if isinstance(val, (str, int, float, bool)):
            coerced[key] = val
        elif isinstance(val, Path):
            coerced[key] = str(val)
        elif isinstance(val, Enum):
            coerced[key] = val.value
        elif isinstance(val, Decimal):
            coerced[key] = float(val)
        else:
            error_msg = (
                f"Cannot coerce {type(val).__name__} to primitive type. "
                f"Only str, int, float, bool, Path, Enum, Decimal are allowed."
            )
            raise TypeError(error_msg)

    return coerced


@dataclass(frozen=True)
class ErrorContext:
    """Context information for errors.

    Only primitive types are allowed in additional_data so the context can
    be serialized into structured log records safely.

    Attributes:
        file_path: Optional file path associated with the error
        operation: Optional operation name that caused the error
        user_id: Optional user ID (masked in logs)
        additional_data: Optional dict with primitive values only
    """

    file_path: str | None = None
    operation: str | None = None
    user_id: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        if self.additional_data is not None:
            object.__setattr__(
                self, "additional_data", _coerce_primitives(self.additional_data)
            )

    def safe_dict(self, *, mask_keys: tuple[str, ...] | None = None) -> dict[str, Any]:
        """Export context as dict with PII masking.

        Args:
            mask_keys: Fields to exclude from output. Defaults to SAFE_DICT_MASK_KEYS.

        Returns:
            Dictionary with masked sensitive fields and guaranteed additional_data key.

        Example:
            >>> ErrorContext(user_id="u1", file_path="/a.mkv").safe_dict()
            {'file_path': '/a.mkv', 'additional_data': {}}
        """
        if mask_keys is None:
            mask_keys = SAFE_DICT_MASK_KEYS

        data: dict[str, Any] = {}
        if self.file_path is not None and "file_path" not in mask_keys:
            data["file_path"] = self.file_path
        if self.operation is not None and "operation" not in mask_keys:
            data["operation"] = self.operation
        if self.user_id is not None and "user_id" not in mask_keys:
            data["user_id"] = self.user_id

        if self.additional_data is not None and "additional_data" not in mask_keys:
            data["additional_data"] = self.additional_data
        else:
            data["additional_data"] = {}

        return data


class OmniMediaError(Exception):
    """Base exception class for all scanner errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize OmniMediaError.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            context: Additional context information
            original_error: Original exception that caused this error
        """
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error
        super().__init__(f"{code.value}: {message}")

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging with PII masking."""
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }


class DomainError(OmniMediaError):
    """Domain rule violations (invalid requests, bad classification input)."""


class InfrastructureError(OmniMediaError):
    """Errors raised while talking to the filesystem or a datastore."""


class ApplicationError(OmniMediaError):
    """Configuration, CLI and job-level errors."""


class ScanFatalError(InfrastructureError):
    """An unrecoverable condition that aborts the whole scan."""


class PathNotFoundError(ScanFatalError):
    """The scan root does not exist or is not a directory."""


class PermissionDeniedError(ScanFatalError):
    """The scan root cannot be read."""


class DatastoreUnavailableError(InfrastructureError):
    """The datastore could not be reached.

    Raised by datastore implementations for transient failures; the batch
    writer retries it and escalates to a fatal scan error once retries are
    exhausted.
    """


class FileProcessingError(InfrastructureError):
    """A failure confined to one file. Recorded and the scan continues."""

    @property
    def reason(self) -> str:
        return self.message


class UnsupportedFormatError(FileProcessingError):
    """No extractor can read the file's content."""


class CorruptFileError(FileProcessingError):
    """The file is empty, truncated or its header does not match its type."""


class ExtractionTimeoutError(FileProcessingError):
    """Metadata extraction exceeded the per-file timeout."""


class JobNotFoundError(ApplicationError):
    """No scan job with that id is visible to the caller."""


def create_path_not_found_error(
    path: str,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> PathNotFoundError:
    """Create a path not found error with context."""
    return PathNotFoundError(
        ErrorCode.PATH_NOT_FOUND,
        f"Path not found: {path}",
        ErrorContext(file_path=path, operation=operation),
        original_error,
    )


def create_permission_denied_error(
    path: str,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> PermissionDeniedError:
    """Create a permission denied error with context."""
    return PermissionDeniedError(
        ErrorCode.PERMISSION_DENIED,
        f"Permission denied: {path}",
        ErrorContext(file_path=path, operation=operation),
        original_error,
    )


def create_corrupt_file_error(
    path: str,
    reason: str,
    original_error: Exception | None = None,
) -> CorruptFileError:
    """Create a corrupt file error with context."""
    return CorruptFileError(
        ErrorCode.CORRUPT_FILE,
        reason,
        ErrorContext(file_path=path, operation="extract_metadata"),
        original_error,
    )


def create_unsupported_format_error(
    path: str,
    reason: str,
    original_error: Exception | None = None,
) -> UnsupportedFormatError:
    """Create an unsupported format error with context."""
    return UnsupportedFormatError(
        ErrorCode.UNSUPPORTED_FORMAT,
        reason,
        ErrorContext(file_path=path, operation="extract_metadata"),
        original_error,
    )


def create_extraction_timeout_error(
    path: str,
    timeout: float,
) -> ExtractionTimeoutError:
    """Create an extraction timeout error with context."""
    return ExtractionTimeoutError(
        ErrorCode.EXTRACTION_TIMEOUT,
        f"Metadata extraction timed out after {timeout:g}s",
        ErrorContext(
            file_path=path,
            operation="extract_metadata",
            additional_data={"timeout_seconds": timeout},
        ),
    )


def create_datastore_unavailable_error(
    message: str,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> DatastoreUnavailableError:
    """Create a datastore unavailable error with context."""
    return DatastoreUnavailableError(
        ErrorCode.DATASTORE_UNAVAILABLE,
        message,
        ErrorContext(operation=operation),
        original_error,
    )


def create_job_not_found_error(job_id: str) -> JobNotFoundError:
    """Create a job not found error with context."""
    return JobNotFoundError(
        ErrorCode.JOB_NOT_FOUND,
        f"Scan job not found: {job_id}",
        ErrorContext(operation="get_job", additional_data={"job_id": job_id}),
    )


def create_validation_error(
    message: str,
    field: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> DomainError:
    """Create a validation error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"field": field} if field else None
    )
    return DomainError(
        ErrorCode.VALIDATION_ERROR,
        message,
        ErrorContext(operation=operation, additional_data=additional_data),
        original_error,
    )


def create_config_error(
    message: str,
    config_key: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> ApplicationError:
    """Create a configuration error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"config_key": config_key} if config_key else None
    )
    return ApplicationError(
        ErrorCode.CONFIG_ERROR,
        message,
        ErrorContext(operation=operation, additional_data=additional_data),
        original_error,
    )


def map_exception_to_error(
    error: Exception,
    file_path: str,
    operation: str,
) -> FileProcessingError:
    """Map an exception raised while handling one file to a FileProcessingError.

    Args:
        error: The exception to map
        file_path: File being processed when the error occurred
        operation: Operation name where error occurred

    Returns:
        FileProcessingError carrying the original exception

    Example:
        >>> try:
        ...     path.stat()
        ... except OSError as e:
        ...     raise map_exception_to_error(e, str(path), "detect_changes") from e
    """
    if isinstance(error, FileProcessingError):
        return error

    context = ErrorContext(
        file_path=file_path,
        operation=operation,
        additional_data={"original_error_type": type(error).__name__},
    )

    if isinstance(error, FileNotFoundError):
        return FileProcessingError(
            ErrorCode.FILE_VANISHED,
            "File disappeared during scan",
            context,
            error,
        )

    if isinstance(error, OSError):
        return FileProcessingError(
            ErrorCode.FILE_READ_ERROR,
            f"File system error: {error}",
            context,
            error,
        )

    return FileProcessingError(
        ErrorCode.SCANNER_ERROR,
        f"Unexpected error: {error}",
        context,
        error,
    )
