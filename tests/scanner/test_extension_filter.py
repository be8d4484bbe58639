"""Tests for the walker's extension and denylist filters."""

from __future__ import annotations

import pytest

from omnimedia.config.models import FilterSettings
from omnimedia.scanner.extension_filter import (
    WalkFilter,
    create_media_extension_filter,
)


class TestMediaExtensionFilter:
    """create_media_extension_filter behaviour."""

    def test_case_insensitive_by_default(self) -> None:
        accept = create_media_extension_filter([".mkv", ".mp4"])
        assert accept("/videos/Movie.MKV")
        assert accept("clip.mp4")
        assert not accept("notes.txt")

    def test_case_sensitive(self) -> None:
        accept = create_media_extension_filter([".mkv"], case_sensitive=True)
        assert accept("movie.mkv")
        assert not accept("movie.MKV")

    def test_file_without_extension_is_rejected(self) -> None:
        accept = create_media_extension_filter([".mkv"])
        assert not accept("README")

    def test_empty_extension_list_rejects_everything(self) -> None:
        accept = create_media_extension_filter([])
        assert not accept("movie.mkv")


class TestWalkFilter:
    """Inline denylist rules."""

    @pytest.mark.parametrize(
        "name",
        ["movie.mkv.part", "movie.crdownload", "x.tmp", "~$draft.docx", "Thumbs.db", ".secret.mp4"],
    )
    def test_rejects_denylisted_files(self, name: str) -> None:
        assert not WalkFilter().should_yield_file(name)

    def test_accepts_media_file(self) -> None:
        assert WalkFilter().should_yield_file("Show.S01E01.mkv")

    def test_hidden_files_allowed_when_configured(self) -> None:
        walk_filter = WalkFilter(FilterSettings(skip_hidden=False))
        assert walk_filter.should_yield_file(".secret.mp4")
        assert not walk_filter.should_skip_directory(".config")

    @pytest.mark.parametrize("name", ["node_modules", "@eaDir", "System Volume Information", ".cache"])
    def test_skips_system_directories(self, name: str) -> None:
        assert WalkFilter().should_skip_directory(name)

    def test_regular_directory_is_entered(self) -> None:
        assert not WalkFilter().should_skip_directory("Season 01")

    def test_invalid_extension_config_is_rejected(self) -> None:
        with pytest.raises(ValueError, match="must start with a dot"):
            FilterSettings(allowed_extensions=["mkv"])
