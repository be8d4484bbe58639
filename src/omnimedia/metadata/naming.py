"""Canonical file names for organised libraries."""

from __future__ import annotations

import re
from pathlib import PurePath

from omnimedia.metadata.classifier import MediaClassification
from omnimedia.scanner.models import MediaRecord, MediaType

# Characters that are invalid in file names on at least one common platform
_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def _sanitize(component: str) -> str:
    return _INVALID_CHARS.sub("", component).strip()


def suggest_filename(
    classification: MediaClassification,
    record: MediaRecord | None = None,
) -> str:
    """Build the canonical file name for a classified file.

    Extracted metadata in ``record`` (for example ID3 tags) takes precedence
    over what was parsed from the file name.

    - movie: ``Title (Year).ext``
    - tv_episode: ``Show - S01E05.ext``
    - music: ``Artist - Title.ext``
    - anything else keeps its original name

    Example:
        >>> suggest_filename(classify_media("The.Matrix.1999.1080p.mkv"))
        'The Matrix (1999).mkv'
    """
    ext = classification.extension or ".mp4"
    title = (record.title if record and record.title else None) or classification.title
    year = (record.year if record and record.year else None) or classification.year

    if classification.media_type is MediaType.MOVIE:
        movie_title = _sanitize(title or "") or "Unknown Movie"
        return f"{movie_title} ({year or 'Unknown'}){ext}"

    if classification.media_type is MediaType.TV_EPISODE:
        show_title = _sanitize(title or "") or "Unknown Show"
        season = classification.season or 1
        episode = classification.episode or 1
        return f"{show_title} - S{season:02d}E{episode:02d}{ext}"

    if classification.media_type is MediaType.MUSIC:
        artist = _sanitize((record.artist if record else None) or "") or "Unknown Artist"
        track_title = _sanitize(title or "") or PurePath(classification.filename).stem
        return f"{artist} - {track_title}{ext}"

    return classification.filename

