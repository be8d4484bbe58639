"""Tests for canonical file name suggestions."""

from __future__ import annotations

from omnimedia.metadata.classifier import classify_media
from omnimedia.metadata.naming import suggest_filename
from omnimedia.scanner.models import MediaRecord, MediaType


def _record(media_type: MediaType, **fields) -> MediaRecord:
    return MediaRecord(
        fingerprint_id="fp",
        user_id="u1",
        category_id="music",
        path="/library/file",
        media_type=media_type,
        **fields,
    )


class TestSuggestFilename:
    def test_movie(self) -> None:
        assert suggest_filename(classify_media("The.Matrix.1999.1080p.mkv")) == "The Matrix (1999).mkv"

    def test_movie_without_year(self) -> None:
        assert suggest_filename(classify_media("Inception.mp4")) == "Inception (Unknown).mp4"

    def test_tv_episode_is_zero_padded(self) -> None:
        assert suggest_filename(classify_media("ShowName.S1E2.mp4")) == "ShowName - S01E02.mp4"

    def test_music_prefers_tags(self) -> None:
        classification = classify_media("track01.mp3")
        record = _record(MediaType.MUSIC, title="Song", artist="Band")

        assert suggest_filename(classification, record) == "Band - Song.mp3"

    def test_music_without_tags(self) -> None:
        assert suggest_filename(classify_media("track01.mp3")) == "Unknown Artist - track01.mp3"

    def test_invalid_characters_are_removed(self) -> None:
        classification = classify_media("song.flac")
        record = _record(MediaType.MUSIC, title="What? Why/How", artist="AC:DC")

        assert suggest_filename(classification, record) == "ACDC - What WhyHow.flac"

    def test_other_types_keep_their_name(self) -> None:
        assert suggest_filename(classify_media("Dune.epub")) == "Dune.epub"
        assert suggest_filename(classify_media("IMG_0042.jpg")) == "IMG_0042.jpg"
