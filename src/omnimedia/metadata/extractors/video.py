"""Video metadata: container header validation plus an optional ffprobe pass."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from typing import Any, Callable, ClassVar

from omnimedia.config.models import ExtractionSettings
from omnimedia.metadata.classifier import MediaClassification, MediaFamily
from omnimedia.metadata.extractors.base import MetadataFields, read_header
from omnimedia.shared.constants import ExtractionDefaults
from omnimedia.shared.errors import (
    create_corrupt_file_error,
    create_extraction_timeout_error,
)

logger = logging.getLogger(__name__)

_ISO_BOXES = (b"ftyp", b"moov", b"mdat", b"wide", b"free", b"skip", b"pnot")


def _is_iso_media(header: bytes) -> bool:
    return header[4:8] in _ISO_BOXES


def _is_matroska(header: bytes) -> bool:
    return header.startswith(b"\x1a\x45\xdf\xa3")


def _is_avi(header: bytes) -> bool:
    return header.startswith(b"RIFF") and header[8:11] == b"AVI"


def _is_asf(header: bytes) -> bool:
    return header.startswith(b"\x30\x26\xb2\x75\x8e\x66\xcf\x11")


def _is_flv(header: bytes) -> bool:
    return header.startswith(b"FLV")


def _is_mpeg_ps(header: bytes) -> bool:
    return header[:4] in (b"\x00\x00\x01\xba", b"\x00\x00\x01\xb3")


def _is_ogg(header: bytes) -> bool:
    return header.startswith(b"OggS")


def _parse_frame_rate(value: str | None) -> float | None:
    """Convert ffprobe's ``24000/1001`` notation to a float."""
    if not value:
        return None
    numerator, _, denominator = value.partition("/")
    try:
        den = float(denominator) if denominator else 1.0
        return round(float(numerator) / den, 3) if den else None
    except ValueError:
        return None


def _to_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class VideoExtractor:
    """Validates the container signature and probes streams with ffprobe.

    Without an ffprobe binary only the header check runs and the record
    carries the container name.
    """

    family = MediaFamily.VIDEO

    SIGNATURES: ClassVar[dict[str, Callable[[bytes], bool]]] = {
        ".mp4": _is_iso_media,
        ".m4v": _is_iso_media,
        ".mov": _is_iso_media,
        ".3gp": _is_iso_media,
        ".mkv": _is_matroska,
        ".webm": _is_matroska,
        ".avi": _is_avi,
        ".wmv": _is_asf,
        ".flv": _is_flv,
        ".mpg": _is_mpeg_ps,
        ".mpeg": _is_mpeg_ps,
        ".ogv": _is_ogg,
    }

    def __init__(self, settings: ExtractionSettings | None = None) -> None:
        self.settings = settings or ExtractionSettings()
        self.ffprobe_path = self._resolve_ffprobe()

    def _resolve_ffprobe(self) -> str | None:
        if not self.settings.use_ffprobe:
            return None
        binary = self.settings.ffprobe_path or ExtractionDefaults.FFPROBE_BINARY
        resolved = shutil.which(binary)
        if resolved is None:
            logger.info("ffprobe not found, video metadata limited to header checks")
        return resolved

    def extract(self, path: str, classification: MediaClassification) -> MetadataFields:
        header = read_header(path, ExtractionDefaults.HEADER_BYTES, minimum=12)
        matches = self.SIGNATURES.get(classification.extension)
        if matches is not None and not matches(header):
            raise create_corrupt_file_error(
                path,
                f"Header does not match a {classification.extension} container",
            )

        fields: MetadataFields = {
            "technical": {"container": classification.extension.lstrip(".")},
        }
        if self.ffprobe_path is not None:
            fields.update(self._probe(path))
        return fields

    def _probe(self, path: str) -> MetadataFields:
        command = [
            self.ffprobe_path,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            path,
        ]
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                timeout=self.settings.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise create_extraction_timeout_error(path, self.settings.timeout_seconds) from e

        if result.returncode != 0:
            raise create_corrupt_file_error(path, "ffprobe could not read the container")

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise create_corrupt_file_error(path, "ffprobe returned invalid output", e) from e

        fmt = data.get("format", {})
        fields: MetadataFields = {
            "duration": _to_float(fmt.get("duration")),
            "bitrate": _to_int(fmt.get("bit_rate")),
            "technical": {
                "container": fmt.get("format_name"),
                "stream_count": len(data.get("streams", [])),
            },
        }

        for stream in data.get("streams", []):
            if stream.get("codec_type") == "video" and "codec" not in fields:
                fields.update(
                    codec=stream.get("codec_name"),
                    width=_to_int(stream.get("width")),
                    height=_to_int(stream.get("height")),
                    framerate=_parse_frame_rate(stream.get("avg_frame_rate")),
                )
            elif stream.get("codec_type") == "audio":
                fields["technical"].setdefault("audio_codec", stream.get("codec_name"))
        return fields
