"""Tests for filename-based media classification."""

from __future__ import annotations

import pytest

from omnimedia.metadata.classifier import (
    MediaFamily,
    classify_media,
    clean_title,
    family_for_extension,
)
from omnimedia.scanner.models import MediaType


class TestTvEpisodes:
    """Season and episode markers."""

    def test_sxxexx_marker(self) -> None:
        result = classify_media("ShowName.S01E02.mp4")

        assert result.family is MediaFamily.VIDEO
        assert result.media_type is MediaType.TV_EPISODE
        assert result.title == "ShowName"
        assert result.season == 1
        assert result.episode == 2
        assert result.extension == ".mp4"

    def test_lowercase_marker_with_three_digit_episode(self) -> None:
        result = classify_media("one.piece.s20e112.1080p.mkv")

        assert result.season == 20
        assert result.episode == 112
        assert result.title == "one piece"
        assert result.resolution == "1080p"

    def test_cross_marker_with_underscores(self) -> None:
        result = classify_media("Show_Name_1x05_720p.mkv")

        assert result.media_type is MediaType.TV_EPISODE
        assert result.title == "Show Name"
        assert result.season == 1
        assert result.episode == 5
        assert result.resolution == "720p"

    def test_frame_size_is_not_an_episode_marker(self) -> None:
        result = classify_media("Sample.Clip.1920x1080.mkv")

        assert result.media_type is MediaType.MOVIE
        assert result.season is None
        assert result.episode is None

    def test_anime_release_name(self) -> None:
        result = classify_media("[SubsPlease] Frieren - 05 (1080p) [ABCD1234].mkv")

        assert result.media_type is MediaType.TV_EPISODE
        assert result.title == "Frieren"
        assert result.episode == 5
        assert result.release_group == "SubsPlease"
        assert result.resolution == "1080p"


class TestMovies:
    """Video files without episode markers."""

    def test_scene_release_name(self) -> None:
        result = classify_media("The.Matrix.1999.1080p.BluRay.mkv")

        assert result.media_type is MediaType.MOVIE
        assert result.title == "The Matrix"
        assert result.year == 1999
        assert result.resolution == "1080p"
        assert result.source == "bluray"

    def test_plain_name(self) -> None:
        result = classify_media("Inception.mp4")

        assert result.media_type is MediaType.MOVIE
        assert result.title == "Inception"
        assert result.year is None

    def test_parenthesised_year(self) -> None:
        result = classify_media("Blade Runner (1982).avi")

        assert result.title == "Blade Runner"
        assert result.year == 1982

    def test_uppercase_extension(self) -> None:
        result = classify_media("Alien.1979.MKV")

        assert result.extension == ".mkv"
        assert result.family is MediaFamily.VIDEO


class TestOtherFamilies:
    """Audio, image and document files."""

    @pytest.mark.parametrize(
        ("filename", "family", "media_type"),
        [
            ("Artist - Song.flac", MediaFamily.AUDIO, MediaType.MUSIC),
            ("track01.mp3", MediaFamily.AUDIO, MediaType.MUSIC),
            ("IMG_0042.jpg", MediaFamily.IMAGE, MediaType.PHOTO),
            ("scan.HEIC", MediaFamily.IMAGE, MediaType.PHOTO),
            ("Batman 001.cbz", MediaFamily.DOCUMENT, MediaType.COMIC),
            ("Dune.epub", MediaFamily.DOCUMENT, MediaType.EBOOK),
            ("Manual.pdf", MediaFamily.DOCUMENT, MediaType.EBOOK),
            ("Wired Magazine 2021-05.pdf", MediaFamily.DOCUMENT, MediaType.MAGAZINE),
            ("notes.txt", MediaFamily.DOCUMENT, MediaType.DOCUMENT),
            ("unknown.xyz", MediaFamily.DOCUMENT, MediaType.DOCUMENT),
        ],
    )
    def test_family_and_type(
        self, filename: str, family: MediaFamily, media_type: MediaType
    ) -> None:
        result = classify_media(filename)

        assert result.family is family
        assert result.media_type is media_type
        assert result.season is None

    def test_photo_year_from_name(self) -> None:
        assert classify_media("IMG_2020_beach.jpg").year == 2020

    def test_magazine_issue_year(self) -> None:
        assert classify_media("Wired Magazine 2021-05.pdf").year == 2021


class TestPurity:
    def test_only_the_name_is_used(self) -> None:
        nested = classify_media("/does/not/exist/ShowName.S01E02.mp4")
        bare = classify_media("ShowName.S01E02.mp4")

        assert nested == bare
        assert nested.filename == "ShowName.S01E02.mp4"

    def test_same_input_same_output(self) -> None:
        assert classify_media("The.Matrix.1999.mkv") == classify_media("The.Matrix.1999.mkv")


class TestHelpers:
    def test_clean_title(self) -> None:
        assert clean_title("Some.Show_Name.") == "Some Show Name"
        assert clean_title("[Group] Title - ") == "Group Title"

    def test_family_for_extension(self) -> None:
        assert family_for_extension(".MKV") is MediaFamily.VIDEO
        assert family_for_extension(".ogg") is MediaFamily.AUDIO
        assert family_for_extension(".nope") is MediaFamily.DOCUMENT
