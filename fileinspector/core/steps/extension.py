"""Extension whitelist step."""

from __future__ import annotations

from typing import Iterable

from fileinspector.core.codes import ResponseCode
from fileinspector.core.extensions import file_extension, normalise_extension
from fileinspector.core.result import Result
from fileinspector.core.scan_context import ScanContext
from fileinspector.core.steps.base import Step


class Extension(Step):
    """Rejects files whose extension is not on the whitelist.

    Comparison is case-insensitive and a missing leading dot is added, so
    ``"PDF"``, ``"pdf"`` and ``".pdf"`` are the same entry.  The step is
    disabled whenever the whitelist is empty.
    """

    name = "File Extension Verification"
    error_code = ResponseCode.EXTENSION

    def __init__(self, allowed: Iterable[str] = ()) -> None:
        super().__init__(enabled=False)
        self._allowed: set[str] = set()
        for extension in allowed:
            self.add_restriction(extension)

    @property
    def allowed(self) -> frozenset[str]:
        return frozenset(self._allowed)

    def add_restriction(self, extension: str) -> None:
        self._allowed.add(normalise_extension(extension))
        self._sync_enablement()

    def remove_restriction(self, extension: str) -> None:
        self._allowed.discard(normalise_extension(extension))
        self._sync_enablement()

    def setup(self, context: ScanContext) -> None:
        self._sync_enablement()

    def run(self, context: ScanContext, result: Result) -> None:
        for file in context.files:
            extension = file_extension(file)
            if extension in self._allowed:
                self.report_valid(file)
            else:
                self.report_invalid(
                    result,
                    file,
                    f"{file} has invalid extension. Actual: {extension or '(none)'}; "
                    f"Expected: {', '.join(sorted(self._allowed))}",
                )

    def _sync_enablement(self) -> None:
        if self._allowed:
            self.enable()
        else:
            self.disable()
