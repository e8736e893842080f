"""File extension normalisation shared by steps, signatures, and plugins."""

from __future__ import annotations

from pathlib import Path


def normalise_extension(extension: str) -> str:
    """Return *extension* lower-cased with exactly one leading dot."""
    extension = extension.strip().lower()
    if not extension.startswith("."):
        extension = "." + extension
    return extension


def file_extension(path: Path) -> str:
    """Return the case-folded extension of *path* (``""`` when it has none)."""
    return Path(path).suffix.lower()
