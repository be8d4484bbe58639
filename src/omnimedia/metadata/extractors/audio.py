"""Audio tags and stream info via mutagen."""

from __future__ import annotations

import logging
from typing import Any

import mutagen

from omnimedia.metadata.classifier import MediaClassification, MediaFamily
from omnimedia.metadata.extractors.base import MetadataFields, parse_year
from omnimedia.shared.errors import (
    create_corrupt_file_error,
    create_unsupported_format_error,
)

logger = logging.getLogger(__name__)


def _first_tag(audio: Any, key: str) -> str | None:
    values = audio.get(key) if audio.tags is not None else None
    if not values:
        return None
    value = str(values[0]).strip()
    return value or None


class AudioExtractor:
    """Reads ID3 / Vorbis / MP4 tags through mutagen's easy interface."""

    family = MediaFamily.AUDIO

    def extract(self, path: str, classification: MediaClassification) -> MetadataFields:
        try:
            audio = mutagen.File(path, easy=True)
        except mutagen.MutagenError as e:
            raise create_corrupt_file_error(path, f"Unreadable audio stream: {e}", e) from e

        if audio is None:
            raise create_unsupported_format_error(
                path,
                f"No audio decoder recognises {classification.extension} content",
            )

        info = audio.info
        fields: MetadataFields = {
            "title": _first_tag(audio, "title"),
            "artist": _first_tag(audio, "artist"),
            "album": _first_tag(audio, "album"),
            "year": parse_year(_first_tag(audio, "date")),
            "genre": [str(g) for g in (audio.get("genre") or [])] if audio.tags is not None else [],
            "duration": getattr(info, "length", None),
            "bitrate": getattr(info, "bitrate", None) or None,
            "sample_rate": getattr(info, "sample_rate", None),
            "codec": type(audio).__name__.lower().replace("easy", ""),
            "technical": {"channels": getattr(info, "channels", None)},
        }

        album_artist = _first_tag(audio, "albumartist")
        if album_artist:
            fields["technical"]["album_artist"] = album_artist
        return fields
