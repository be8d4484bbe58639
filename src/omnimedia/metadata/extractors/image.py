"""Image dimensions and EXIF via Pillow."""

from __future__ import annotations

import logging
import warnings

from PIL import ExifTags, Image, UnidentifiedImageError

from omnimedia.metadata.classifier import MediaClassification, MediaFamily
from omnimedia.metadata.extractors.base import MetadataFields, parse_year, read_header
from omnimedia.shared.constants import ImageFormats
from omnimedia.shared.errors import create_corrupt_file_error

logger = logging.getLogger(__name__)

_EXIF_FIELDS = {
    ExifTags.Base.Make: "camera_make",
    ExifTags.Base.Model: "camera_model",
    ExifTags.Base.Orientation: "orientation",
    ExifTags.Base.DateTime: "taken_at",
}


class ImageExtractor:
    """Reads dimensions, format and a handful of EXIF fields.

    Formats Pillow cannot decode without plugins (RAW, HEIC, SVG) are only
    checked for being non-empty.
    """

    family = MediaFamily.IMAGE

    def extract(self, path: str, classification: MediaClassification) -> MetadataFields:
        if classification.extension in ImageFormats.UNDECODABLE:
            read_header(path, 16)
            return {"technical": {"format": classification.extension.lstrip(".")}}

        try:
            with warnings.catch_warnings():
                warnings.filterwarnings("ignore", category=Image.DecompressionBombWarning)
                with Image.open(path) as img:
                    img.verify()
                # verify() leaves the image unusable, reopen for metadata
                with Image.open(path) as img:
                    fields: MetadataFields = {
                        "width": img.width,
                        "height": img.height,
                        "codec": (img.format or "").lower() or None,
                        "technical": {"mode": img.mode},
                    }
                    exif = img.getexif()
        except UnidentifiedImageError as e:
            raise create_corrupt_file_error(path, "Image data is not decodable", e) from e
        except (SyntaxError, ValueError) as e:
            # Pillow reports broken image structure as SyntaxError
            raise create_corrupt_file_error(path, f"Damaged image: {e}", e) from e

        for tag, name in _EXIF_FIELDS.items():
            value = exif.get(tag)
            if value is not None:
                fields["technical"][name] = str(value).strip("\x00 ")

        taken_at = fields["technical"].get("taken_at")
        if taken_at:
            fields["year"] = parse_year(taken_at)
        return fields
