"""Magic-number template loading.

The template is a JSON list of ``{"extension": ..., "signature": ...}``
records.  ``signature`` is a space-separated string of hex bytes
(e.g. ``"FF D8 FF"``).  One extension may appear in several records, each
adding another candidate signature::

    [
        {"extension": ".jpg", "signature": "FF D8 FF E0"},
        {"extension": ".jpg", "signature": "FF D8 FF E1"}
    ]
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from fileinspector.core.extensions import normalise_extension

logger = logging.getLogger(__name__)

DEFAULT_SIGNATURES_PATH = Path(__file__).resolve().parent.parent / "resources" / "signatures.json"


def parse_signature(text: str) -> bytes:
    """Convert ``"FF D8 FF"`` into ``b"\\xff\\xd8\\xff"``."""
    return bytes(int(part, 16) for part in text.split())


class SignatureTable:
    """Extension to candidate magic-number mapping."""

    def __init__(self, signatures: Mapping[str, Iterable[bytes]] | None = None) -> None:
        self._signatures: dict[str, list[bytes]] = {}
        for extension, candidates in (signatures or {}).items():
            for candidate in candidates:
                self.add(extension, candidate)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "SignatureTable":
        table = cls()
        for record in records:
            table.add(record["extension"], parse_signature(record["signature"]))
        return table

    @classmethod
    def from_file(cls, path: str | Path = DEFAULT_SIGNATURES_PATH) -> "SignatureTable":
        with open(path, encoding="utf-8") as fh:
            records = json.load(fh)
        table = cls.from_records(records)
        logger.debug("Loaded %d signature extension(s) from %s", len(table), path)
        return table

    def add(self, extension: str, signature: bytes) -> None:
        if not signature:
            raise ValueError(f"empty signature for extension {extension!r}")
        self._signatures.setdefault(normalise_extension(extension), []).append(bytes(signature))

    def candidates(self, extension: str) -> list[bytes]:
        return list(self._signatures.get(normalise_extension(extension), ()))

    def __contains__(self, extension: object) -> bool:
        return isinstance(extension, str) and normalise_extension(extension) in self._signatures

    def __len__(self) -> int:
        return len(self._signatures)
