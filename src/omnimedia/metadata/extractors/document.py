"""Comic, ebook and document validation by magic bytes."""

from __future__ import annotations

import zipfile
from typing import ClassVar

from omnimedia.metadata.classifier import MediaClassification, MediaFamily
from omnimedia.metadata.extractors.base import MetadataFields, read_header
from omnimedia.shared.constants import ExtractionDefaults
from omnimedia.shared.errors import create_corrupt_file_error

_ZIP = b"PK\x03\x04"


class DocumentExtractor:
    """Checks that a document's content matches its extension.

    Zip based containers (cbz, epub, docx) also report their page or entry
    count.
    """

    family = MediaFamily.DOCUMENT

    MAGIC: ClassVar[dict[str, tuple[bytes, ...]]] = {
        ".pdf": (b"%PDF",),
        ".cbz": (_ZIP,),
        ".epub": (_ZIP,),
        ".docx": (_ZIP,),
        ".cbr": (b"Rar!\x1a\x07",),
        ".cb7": (b"7z\xbc\xaf\x27\x1c",),
        ".doc": (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",),
    }

    def extract(self, path: str, classification: MediaClassification) -> MetadataFields:
        header = read_header(path, ExtractionDefaults.HEADER_BYTES)
        extension = classification.extension
        expected = self.MAGIC.get(extension, ())

        if expected and not header.startswith(expected):
            raise create_corrupt_file_error(
                path,
                f"Content does not look like a {extension} file",
            )

        if extension in (".mobi", ".azw3") and header[60:64] != b"BOOK":
            raise create_corrupt_file_error(path, f"Missing {extension} signature")

        technical: dict[str, object] = {"format": extension.lstrip(".")}
        if header.startswith(_ZIP):
            technical["entries"] = self._count_entries(path)
        return {"technical": technical}

    @staticmethod
    def _count_entries(path: str) -> int:
        try:
            with zipfile.ZipFile(path) as archive:
                return sum(1 for info in archive.infolist() if not info.is_dir())
        except zipfile.BadZipFile as e:
            raise create_corrupt_file_error(path, f"Broken zip archive: {e}", e) from e
