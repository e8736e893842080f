"""Chunked file hashing."""

from __future__ import annotations

import hashlib
from pathlib import Path

_CHUNK_SIZE = 64 * 1024


def file_digest(path: Path, algorithm: str = "md5") -> str:
    """Return the lower-case hex digest of *path* using *algorithm*.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If *algorithm* is unknown to :mod:`hashlib`.
    """
    hasher = hashlib.new(algorithm)
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()
