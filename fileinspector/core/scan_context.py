"""ScanContext — immutable per-scan state shared by every validation step.

:class:`ScanContext` is built once per scan by :func:`prepare_context` and
handed to each step's ``setup`` and ``run``.  Steps never mutate it; per-file
outcomes go to the :class:`~fileinspector.core.result.Result` ledger instead.

Usage::

    from fileinspector.core.scan_context import PreparationError, prepare_context

    try:
        ctx = prepare_context("/srv/uploads/batch-42")
    except PreparationError as exc:
        print(exc.code)
    print(ctx.files)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from fileinspector.core.codes import ResponseCode

logger = logging.getLogger(__name__)


class PreparationError(Exception):
    """Raised when the file set for a scan cannot be resolved.

    Attributes:
        code: Response code the scan result should carry.
        path: The path that failed to resolve.
    """

    def __init__(self, code: int, path: str | Path, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.path = str(path)


@dataclass(frozen=True)
class ScanContext:
    """Read-only state for a single scan.

    Attributes:
        scan_path: Directory (or single file) being scanned.
        files: Regular files making up the scan, sorted by path.
        format_verification: Whether format-specific validators run.
        scan_id: UUID string identifying the scan in logs and traces.
    """

    scan_path: Path
    files: tuple[Path, ...]
    format_verification: bool = False
    scan_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def file_count(self) -> int:
        return len(self.files)


def prepare_context(
    path: str | Path,
    *,
    recursive: bool = False,
    format_verification: bool = False,
) -> ScanContext:
    """Resolve *path* into a :class:`ScanContext`.

    A directory contributes its regular files (its whole tree when
    *recursive* is set).  A single regular file is scanned on its own.  An
    empty directory yields an empty file set, which is not an error.

    Raises:
        PreparationError: If *path* does not exist or cannot be listed.
    """
    scan_path = Path(path)
    try:
        exists = scan_path.exists()
        is_file = exists and scan_path.is_file()
    except OSError as exc:
        raise PreparationError(
            ResponseCode.PATH_UNREADABLE,
            scan_path,
            f"Scan path could not be inspected: {scan_path} ({exc})",
        ) from exc

    if not exists:
        raise PreparationError(
            ResponseCode.PATH_NOT_FOUND, scan_path, f"Scan path does not exist: {scan_path}"
        )

    if is_file:
        files: list[Path] = [scan_path]
    else:
        try:
            entries = scan_path.rglob("*") if recursive else scan_path.iterdir()
            files = sorted(p for p in entries if p.is_file())
        except OSError as exc:
            raise PreparationError(
                ResponseCode.PATH_UNREADABLE,
                scan_path,
                f"Scan path could not be listed: {scan_path} ({exc})",
            ) from exc

    logger.debug("Prepared scan of %s: %d file(s)", scan_path, len(files))
    return ScanContext(
        scan_path=scan_path,
        files=tuple(files),
        format_verification=format_verification,
    )
