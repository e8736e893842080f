"""Result — the per-scan ledger of file validity and executed steps.

Every file in the scan starts out valid (:meth:`Result.mark_all_valid`); steps
can only demote files.  A file moves from *valid* to *inconclusive* (no
verdict could be reached) or to *invalid*, and from *inconclusive* to
*invalid*, but never back.  At the end of a scan each file is in exactly one
of the three sets.

Steps communicate with each other only through this ledger and the
:class:`~fileinspector.core.evaluator.Evaluator`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from fileinspector.core.codes import ResponseCode, code_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvalidFile:
    """Why a file was rejected.

    Attributes:
        file: Path of the rejected file.
        code: Error code of the step that rejected it.
        message: Human-readable reason.
    """

    file: Path
    code: int
    message: str


class Result:
    """Scan-scoped ledger.  One instance per :meth:`Inspector.scan` call."""

    def __init__(self) -> None:
        self._response_code: int = ResponseCode.OK
        self._valid: dict[Path, None] = {}
        self._inconclusive: dict[Path, None] = {}
        self._invalid: dict[Path, InvalidFile] = {}
        self._executed_steps: list[str] = []
        self.errors: list[str] = []
        self.scan_id: str | None = None

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def mark_all_valid(self, files: Iterable[Path]) -> None:
        for file in map(Path, files):
            if file not in self._invalid and file not in self._inconclusive:
                self._valid[file] = None

    def mark_invalid(self, file: Path, code: int, message: str) -> None:
        """Demote *file* to invalid.  A later call for the same file wins."""
        file = Path(file)
        self._valid.pop(file, None)
        self._inconclusive.pop(file, None)
        self._invalid[file] = InvalidFile(file=file, code=code, message=message)

    def mark_inconclusive(self, file: Path) -> None:
        """Record that no verdict could be reached for a currently valid file."""
        file = Path(file)
        if file in self._valid:
            del self._valid[file]
            self._inconclusive[file] = None

    def set_response_code(self, code: int) -> None:
        self._response_code = code

    def record_executed_step(self, name: str) -> None:
        self._executed_steps.append(name)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def response_code(self) -> int:
        return self._response_code

    @property
    def response_name(self) -> str:
        return code_name(self._response_code)

    @property
    def ok(self) -> bool:
        return self._response_code == ResponseCode.OK

    @property
    def valid_files(self) -> list[Path]:
        return list(self._valid)

    @property
    def invalid_files(self) -> list[InvalidFile]:
        return list(self._invalid.values())

    @property
    def inconclusive_files(self) -> list[Path]:
        return list(self._inconclusive)

    @property
    def executed_steps(self) -> list[str]:
        return list(self._executed_steps)

    def is_valid(self, file: Path) -> bool:
        return Path(file) in self._valid

    def invalid_reason(self, file: Path) -> InvalidFile | None:
        return self._invalid.get(Path(file))

    def __repr__(self) -> str:
        return (
            f"Result(response={self.response_name}, valid={len(self._valid)}, "
            f"invalid={len(self._invalid)}, inconclusive={len(self._inconclusive)})"
        )
