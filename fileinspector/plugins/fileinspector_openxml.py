"""Office Open XML container validator bundle.

``.docx``, ``.xlsx`` and ``.pptx`` files are ZIP archives that must contain a
``[Content_Types].xml`` part.  This bundle rejects files that cannot be
opened as ZIP archives, fail the archive CRC check, or lack that part.
"""

from __future__ import annotations

import zipfile
import zlib
from pathlib import Path

from fileinspector.core.steps import FormatSpecificValidator

__all__ = ["OpenXMLValidator"]

#: Error code declared by this bundle.
OPENXML_ERROR = 100

_CONTENT_TYPES = "[Content_Types].xml"


class OpenXMLValidator(FormatSpecificValidator):
    name = "Office Open XML Verification"
    error_code = OPENXML_ERROR
    extensions = frozenset({".docx", ".xlsx", ".pptx"})

    def validate(self, file: Path) -> str | None:
        try:
            with zipfile.ZipFile(file) as archive:
                corrupt = archive.testzip()
                names = set(archive.namelist())
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            return f"{file} is not a valid Office Open XML container: {exc}"

        if corrupt is not None:
            return f"{file} has a corrupt archive member: {corrupt}"
        if _CONTENT_TYPES not in names:
            return f"{file} is missing {_CONTENT_TYPES}"
        return None
