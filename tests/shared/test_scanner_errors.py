"""Tests for the error hierarchy and factories."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import pytest

from omnimedia.shared.errors import (
    ApplicationError,
    CorruptFileError,
    DatastoreUnavailableError,
    DomainError,
    ErrorCode,
    ErrorContext,
    FileProcessingError,
    InfrastructureError,
    PathNotFoundError,
    ScanFatalError,
    create_config_error,
    create_corrupt_file_error,
    create_datastore_unavailable_error,
    create_extraction_timeout_error,
    create_job_not_found_error,
    create_path_not_found_error,
    create_permission_denied_error,
    create_validation_error,
    map_exception_to_error,
)


class _Color(Enum):
    RED = "red"


class TestErrorContext:
    def test_user_id_is_masked(self) -> None:
        context = ErrorContext(user_id="u1", file_path="/a.mkv", operation="scan")

        assert context.safe_dict() == {
            "file_path": "/a.mkv",
            "operation": "scan",
            "additional_data": {},
        }

    def test_custom_mask_keys(self) -> None:
        context = ErrorContext(user_id="u1", file_path="/a.mkv")

        assert context.safe_dict(mask_keys=("file_path",)) == {
            "user_id": "u1",
            "additional_data": {},
        }

    def test_additional_data_is_coerced(self) -> None:
        context = ErrorContext(
            additional_data={"path": Path("/x"), "color": _Color.RED, "count": 3}
        )

        assert context.additional_data == {"path": "/x", "color": "red", "count": 3}

    def test_non_primitive_additional_data_is_rejected(self) -> None:
        with pytest.raises(TypeError):
            ErrorContext(additional_data={"items": [1, 2]})


class TestHierarchy:
    def test_fatal_errors(self) -> None:
        error = create_path_not_found_error("/missing", operation="scan")

        assert isinstance(error, PathNotFoundError)
        assert isinstance(error, ScanFatalError)
        assert isinstance(error, InfrastructureError)
        assert str(error) == "PATH_NOT_FOUND: Path not found: /missing"
        assert create_permission_denied_error("/root").code is ErrorCode.PERMISSION_DENIED

    def test_per_file_errors(self) -> None:
        error = create_corrupt_file_error("/a.mkv", "File is empty (0 bytes)")

        assert isinstance(error, CorruptFileError)
        assert isinstance(error, FileProcessingError)
        assert not isinstance(error, ScanFatalError)
        assert error.reason == "File is empty (0 bytes)"
        assert error.context.file_path == "/a.mkv"

    def test_timeout_message(self) -> None:
        error = create_extraction_timeout_error("/a.mkv", 2.5)

        assert error.message == "Metadata extraction timed out after 2.5s"
        assert error.context.additional_data == {"timeout_seconds": 2.5}

    def test_application_and_domain_errors(self) -> None:
        assert isinstance(create_config_error("bad", config_key="scan"), ApplicationError)
        assert isinstance(create_job_not_found_error("scan_1_u1"), ApplicationError)
        validation = create_validation_error("empty path", field="path")
        assert isinstance(validation, DomainError)
        assert validation.context.additional_data == {"field": "path"}

    def test_datastore_unavailable(self) -> None:
        cause = RuntimeError("socket closed")

        error = create_datastore_unavailable_error("down", operation="batch_write", original_error=cause)

        assert isinstance(error, DatastoreUnavailableError)
        assert error.original_error is cause

    def test_to_dict_masks_context(self) -> None:
        error = ApplicationError(
            ErrorCode.SCANNER_ERROR,
            "boom",
            ErrorContext(user_id="u1", operation="scan"),
            ValueError("inner"),
        )

        assert error.to_dict() == {
            "code": "SCANNER_ERROR",
            "message": "boom",
            "context": {"operation": "scan", "additional_data": {}},
            "original_error": "inner",
        }


class TestMapExceptionToError:
    def test_file_not_found_is_vanished(self) -> None:
        error = map_exception_to_error(FileNotFoundError("gone"), "/a.mkv", "hash")

        assert error.code is ErrorCode.FILE_VANISHED
        assert error.context.additional_data == {"original_error_type": "FileNotFoundError"}

    def test_os_error_is_read_error(self) -> None:
        error = map_exception_to_error(PermissionError("denied"), "/a.mkv", "hash")

        assert error.code is ErrorCode.FILE_READ_ERROR

    def test_anything_else_is_scanner_error(self) -> None:
        error = map_exception_to_error(ValueError("odd"), "/a.mkv", "extract_metadata")

        assert error.code is ErrorCode.SCANNER_ERROR
        assert error.context.operation == "extract_metadata"

    def test_file_processing_errors_pass_through(self) -> None:
        original = create_corrupt_file_error("/a.mkv", "truncated")

        assert map_exception_to_error(original, "/a.mkv", "extract_metadata") is original
