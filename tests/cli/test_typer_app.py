"""Tests for the omnimedia command line interface."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from conftest import write_pdf
from omnimedia.cli.typer_app import app
from omnimedia.shared.constants import CLIDefaults

runner = CliRunner()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """The scan command configures the package logger against the runner's streams."""
    yield
    package_logger = logging.getLogger("omnimedia")
    package_logger.handlers.clear()
    package_logger.propagate = True


@pytest.fixture
def config_file(temp_dir: Path) -> Path:
    path = temp_dir / "omnimedia.toml"
    path.write_text(
        "[extraction]\nuse_ffprobe = false\n\n"
        "[logging]\nlevel = \"WARNING\"\nrich_console = false\n"
    )
    return path


@pytest.fixture
def ebook_library(temp_dir: Path) -> Path:
    root = temp_dir / "books"
    for name in ("Dune.pdf", "Neuromancer.pdf", "Wired Magazine 2021-05.pdf"):
        write_pdf(root / name, payload=name.encode())
    return root


def _scan(config_file: Path, library: Path, db: Path, *extra: str):
    return runner.invoke(
        app,
        [
            "--config",
            str(config_file),
            "scan",
            str(library),
            "--user",
            "u1",
            "--category",
            "books",
            "--db",
            str(db),
            *extra,
        ],
    )


class TestVersion:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert CLIDefaults.VERSION in result.stdout


class TestClassifyCommand:
    def test_json_output(self) -> None:
        result = runner.invoke(app, ["classify", "ShowName.S01E02.mp4", "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["success"] is True
        assert payload["command"] == "classify"
        row = payload["data"][0]
        assert row["media_type"] == "tv_episode"
        assert (row["season"], row["episode"]) == (1, 2)
        assert row["suggested_filename"] == "ShowName - S01E02.mp4"

    def test_table_output(self) -> None:
        result = runner.invoke(app, ["classify", "The.Matrix.1999.1080p.mkv"])

        assert result.exit_code == 0
        assert "movie" in result.stdout


class TestScanCommand:
    def test_json_scan_then_incremental_rescan(
        self, config_file: Path, ebook_library: Path, temp_dir: Path
    ) -> None:
        db = temp_dir / "scan.db"

        first = _scan(config_file, ebook_library, db, "--json")
        second = _scan(config_file, ebook_library, db, "--json", "--parallel", "2")

        assert first.exit_code == CLIDefaults.EXIT_SUCCESS
        data = json.loads(first.stdout)["data"]
        assert data["status"] == "completed"
        assert data["total_files"] == 3
        assert data["processed_files"] == 3

        assert second.exit_code == CLIDefaults.EXIT_SUCCESS
        data = json.loads(second.stdout)["data"]
        assert data["processed_files"] == 0
        assert data["skipped_files"] == 3

    def test_corrupt_file_gives_partial_exit_code(
        self, config_file: Path, ebook_library: Path, temp_dir: Path
    ) -> None:
        (ebook_library / "Broken.pdf").write_bytes(b"")

        result = _scan(config_file, ebook_library, temp_dir / "scan.db")

        assert result.exit_code == CLIDefaults.EXIT_PARTIAL
        assert "CORRUPT_FILE" in result.output

    def test_missing_root_fails(self, config_file: Path, temp_dir: Path) -> None:
        result = _scan(config_file, temp_dir / "missing", temp_dir / "scan.db")

        assert result.exit_code == CLIDefaults.EXIT_ERROR
        assert "PATH_NOT_FOUND" in result.output

    def test_table_output(self, config_file: Path, ebook_library: Path, temp_dir: Path) -> None:
        result = _scan(config_file, ebook_library, temp_dir / "scan.db")

        assert result.exit_code == CLIDefaults.EXIT_SUCCESS
        assert "Processed" in result.stdout

    def test_blank_category_is_rejected(
        self, config_file: Path, ebook_library: Path, temp_dir: Path
    ) -> None:
        result = runner.invoke(
            app,
            [
                "--config",
                str(config_file),
                "scan",
                str(ebook_library),
                "--user",
                "u1",
                "--category",
                " ",
                "--db",
                str(temp_dir / "scan.db"),
            ],
        )

        assert result.exit_code == CLIDefaults.EXIT_ERROR
        assert "Invalid scan request" in result.output

    def test_parallel_out_of_range(
        self, config_file: Path, ebook_library: Path, temp_dir: Path
    ) -> None:
        result = _scan(config_file, ebook_library, temp_dir / "scan.db", "--parallel", "64")

        assert result.exit_code != 0

    def test_invalid_config_file(self, temp_dir: Path) -> None:
        bad = temp_dir / "bad.toml"
        bad.write_text("[scan]\nbatch_size = -1\n")

        result = runner.invoke(app, ["--config", str(bad), "classify", "a.mkv"])

        assert result.exit_code == CLIDefaults.EXIT_ERROR
