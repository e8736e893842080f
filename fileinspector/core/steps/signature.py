"""Magic-number signature step."""

from __future__ import annotations

import logging
from pathlib import Path

from fileinspector.core.codes import ResponseCode
from fileinspector.core.extensions import file_extension
from fileinspector.core.result import Result
from fileinspector.core.scan_context import ScanContext
from fileinspector.core.signatures import SignatureTable
from fileinspector.core.steps.base import Step

logger = logging.getLogger(__name__)

# Bytes read from the start of each file; candidates longer than this never match.
HEADER_LENGTH = 20


def _hex(signature: bytes) -> str:
    return " ".join(f"{b:02X}" for b in signature)


class Signature(Step):
    """Checks that each file starts with a magic number registered for its extension.

    A file passes when its first bytes equal any one candidate signature for
    its extension.  Extensions with no registered signatures are not
    rejected; the file is logged and passed.
    """

    name = "File Signature Verification"
    error_code = ResponseCode.SIGNATURE

    def __init__(self, table: SignatureTable) -> None:
        super().__init__(enabled=True)
        self._table = table

    def run(self, context: ScanContext, result: Result) -> None:
        for file in context.files:
            extension = file_extension(file)
            candidates = self._table.candidates(extension)
            if not candidates:
                logger.warning(
                    "Extension %r has no known signatures; signature test skipped for %s",
                    extension,
                    file,
                )
                self.report_valid(file)
                continue

            try:
                header = self._read_header(file)
            except OSError as exc:
                self.report_invalid(result, file, f"{file} could not be read: {exc}")
                continue

            if any(header.startswith(candidate) for candidate in candidates):
                self.report_valid(file)
            else:
                expected = ", ".join(f"[{_hex(c)}]" for c in candidates)
                self.report_invalid(
                    result, file, f"{file} has invalid signature. Expected: {expected}"
                )

    @staticmethod
    def _read_header(file: Path) -> bytes:
        with open(file, "rb") as fh:
            return fh.read(HEADER_LENGTH)
