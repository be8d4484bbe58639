"""Filename-based media classification.

``classify_media`` is a pure function: it looks only at the file name and
never touches the filesystem. The extension decides the media family,
filename markers refine it (TV episode markers, year, resolution and
source tags). Anime-style release names (``[Group] Title - 05``) are
handed to anitopy, which understands their conventions better than the
generic patterns.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath
from re import Pattern
from typing import Any, ClassVar

import anitopy

from omnimedia.scanner.models import MediaType
from omnimedia.shared.constants import (
    AudioFormats,
    DocumentFormats,
    ImageFormats,
    VideoFormats,
)

logger = logging.getLogger(__name__)


class MediaFamily(str, Enum):
    """Extractor family a file belongs to."""

    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"
    DOCUMENT = "document"


@dataclass(frozen=True)
class MediaClassification:
    """Everything that can be learned about a file from its name."""

    filename: str
    extension: str
    family: MediaFamily
    media_type: MediaType
    title: str | None = None
    season: int | None = None
    episode: int | None = None
    year: int | None = None
    resolution: str | None = None
    source: str | None = None
    release_group: str | None = None


class FilenamePatterns:
    """Regex patterns applied to file names."""

    SEASON_EPISODE: ClassVar[Pattern[str]] = re.compile(
        r"s(?P<season>\d{1,2})e(?P<episode>\d{1,3})",
        re.IGNORECASE,
    )
    # 1x05 style; the boundaries keep "1920x1080" from matching
    CROSS_EPISODE: ClassVar[Pattern[str]] = re.compile(
        r"(?<![a-z0-9])(?P<season>\d{1,2})x(?P<episode>\d{1,3})(?![a-z0-9])",
        re.IGNORECASE,
    )
    YEAR: ClassVar[Pattern[str]] = re.compile(r"(?<![0-9])(?P<year>19\d{2}|20\d{2})(?![0-9])")
    RESOLUTION: ClassVar[Pattern[str]] = re.compile(
        r"(?<![a-z0-9])(?P<resolution>720p|1080p|2160p|4k)(?![a-z0-9])",
        re.IGNORECASE,
    )
    SOURCE: ClassVar[Pattern[str]] = re.compile(
        r"(?<![a-z0-9])(?P<source>bluray|brrip|webrip|web-dl|hdtv|dvdrip)(?![a-z0-9])",
        re.IGNORECASE,
    )
    RELEASE_GROUP: ClassVar[Pattern[str]] = re.compile(r"^\[(?P<group>[^\]]+)\]")


_FAMILY_BY_EXTENSION: dict[str, MediaFamily] = {
    **{ext: MediaFamily.VIDEO for ext in VideoFormats.EXTENSIONS},
    **{ext: MediaFamily.AUDIO for ext in AudioFormats.EXTENSIONS},
    **{ext: MediaFamily.IMAGE for ext in ImageFormats.EXTENSIONS},
    **{ext: MediaFamily.DOCUMENT for ext in DocumentFormats.EXTENSIONS},
}


def family_for_extension(extension: str) -> MediaFamily:
    """Return the media family of an extension (``.mkv`` -> VIDEO).

    Unknown extensions fall back to DOCUMENT.
    """
    return _FAMILY_BY_EXTENSION.get(extension.lower(), MediaFamily.DOCUMENT)


def clean_title(raw: str) -> str:
    """Turn ``Some.Show_Name.`` into ``Some Show Name``."""
    title = re.sub(r"[._]", " ", raw)
    title = re.sub(r"[\[\]()]", " ", title)
    title = re.sub(r"\s+", " ", title)
    return title.strip(" -")


def _search_int(pattern: Pattern[str], text: str, group: str) -> int | None:
    match = pattern.search(text)
    return int(match.group(group)) if match else None


def _search_lower(pattern: Pattern[str], text: str, group: str) -> str | None:
    match = pattern.search(text)
    return match.group(group).lower() if match else None


def _first_int(value: Any) -> int | None:
    """Convert an anitopy field (str or list of str) to int."""
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None:
        return None
    try:
        return int(str(value))
    except ValueError:
        return None


def _document_type(filename: str, extension: str) -> MediaType:
    if extension in DocumentFormats.COMIC_EXTENSIONS:
        return MediaType.COMIC
    if extension in DocumentFormats.EBOOK_EXTENSIONS:
        return MediaType.EBOOK
    if extension == DocumentFormats.PDF_EXTENSION:
        lowered = filename.lower()
        if any(keyword in lowered for keyword in DocumentFormats.MAGAZINE_KEYWORDS):
            return MediaType.MAGAZINE
        return MediaType.EBOOK
    return MediaType.DOCUMENT


def _parse_release_name(filename: str) -> dict[str, Any]:
    """Parse an anime-style release name with anitopy.

    Returns an empty dict when anitopy cannot make sense of the name.
    """
    try:
        parsed = anitopy.parse(filename)
    except (KeyError, ValueError, TypeError, AttributeError, IndexError) as e:
        logger.warning("anitopy failed to parse '%s': %s", filename, e)
        return {}
    return parsed or {}


def _classify_video(filename: str, stem: str) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "year": _search_int(FilenamePatterns.YEAR, stem, "year"),
        "resolution": _search_lower(FilenamePatterns.RESOLUTION, stem, "resolution"),
        "source": _search_lower(FilenamePatterns.SOURCE, stem, "source"),
    }

    for pattern in (FilenamePatterns.SEASON_EPISODE, FilenamePatterns.CROSS_EPISODE):
        match = pattern.search(stem)
        if match:
            fields.update(
                media_type=MediaType.TV_EPISODE,
                season=int(match.group("season")),
                episode=int(match.group("episode")),
                title=clean_title(stem[: match.start()]) or None,
            )
            return fields

    if FilenamePatterns.RELEASE_GROUP.match(stem):
        parsed = _parse_release_name(filename)
        episode = _first_int(parsed.get("episode_number"))
        if parsed.get("anime_title"):
            fields["title"] = parsed["anime_title"]
        fields["release_group"] = parsed.get("release_group")
        if parsed.get("video_resolution") and fields["resolution"] is None:
            fields["resolution"] = str(parsed["video_resolution"]).lower()
        if episode is not None:
            fields.update(
                media_type=MediaType.TV_EPISODE,
                season=_first_int(parsed.get("anime_season")),
                episode=episode,
            )
            return fields

    fields["media_type"] = MediaType.MOVIE
    if "title" not in fields:
        # Everything from the year (or the first quality tag) on is noise
        cut = len(stem)
        for pattern in (
            FilenamePatterns.YEAR,
            FilenamePatterns.RESOLUTION,
            FilenamePatterns.SOURCE,
        ):
            match = pattern.search(stem)
            if match and match.start() > 0:
                cut = min(cut, match.start())
        fields["title"] = clean_title(stem[:cut]) or None
    return fields


def classify_media(filename: str) -> MediaClassification:
    """Classify a file from its name alone.

    Args:
        filename: File name or path; only the final component is used.

    Returns:
        MediaClassification with the media family, media type and any
        structured fields recognised in the name.

    Example:
        >>> c = classify_media("ShowName.S01E02.mp4")
        >>> c.media_type, c.season, c.episode
        (<MediaType.TV_EPISODE: 'tv_episode'>, 1, 2)
    """
    name = PurePath(filename).name
    stem = PurePath(name).stem
    extension = PurePath(name).suffix.lower()
    family = family_for_extension(extension)

    if family is MediaFamily.VIDEO:
        fields = _classify_video(name, stem)
    else:
        fields = {"title": clean_title(stem) or None}
        if family is MediaFamily.AUDIO:
            fields["media_type"] = MediaType.MUSIC
        elif family is MediaFamily.IMAGE:
            fields["media_type"] = MediaType.PHOTO
        else:
            fields["media_type"] = _document_type(name, extension)
        fields["year"] = _search_int(FilenamePatterns.YEAR, stem, "year")

    return MediaClassification(
        filename=name,
        extension=extension,
        family=family,
        **fields,
    )
