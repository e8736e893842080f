"""File size bounds step."""

from __future__ import annotations

import logging

from fileinspector.core.codes import ResponseCode
from fileinspector.core.result import Result
from fileinspector.core.scan_context import ScanContext
from fileinspector.core.steps.base import Step

logger = logging.getLogger(__name__)


class Size(Step):
    """Rejects files outside the configured size bounds.

    Each bound is optional; ``None`` means unbounded on that side.  The step
    is disabled only when neither bound is set.

    Args:
        min_bytes: Smallest allowed size in bytes, inclusive.
        max_bytes: Largest allowed size in bytes, inclusive.
    """

    name = "File Size Verification"
    error_code = ResponseCode.SIZE

    def __init__(self, min_bytes: int | None = None, max_bytes: int | None = None) -> None:
        super().__init__(enabled=False)
        for bound in (min_bytes, max_bytes):
            if bound is not None and bound < 0:
                raise ValueError(f"size bounds must be non-negative, got {bound}")
        if min_bytes is not None and max_bytes is not None and min_bytes > max_bytes:
            raise ValueError(f"min_bytes ({min_bytes}) exceeds max_bytes ({max_bytes})")
        self.min_bytes = min_bytes
        self.max_bytes = max_bytes

    def setup(self, context: ScanContext) -> None:
        if self.min_bytes is None and self.max_bytes is None:
            self.disable()
        else:
            self.enable()

    def run(self, context: ScanContext, result: Result) -> None:
        for file in context.files:
            try:
                size = file.stat().st_size
            except OSError as exc:
                self.report_invalid(result, file, f"{file} size could not be read: {exc}")
                continue

            if self._within_bounds(size):
                self.report_valid(file)
            else:
                self.report_invalid(
                    result,
                    file,
                    f"File {file} has invalid size. Actual: {size} - Allowed range: {self._interval()}",
                )

    def _within_bounds(self, size: int) -> bool:
        if self.min_bytes is not None and size < self.min_bytes:
            return False
        if self.max_bytes is not None and size > self.max_bytes:
            return False
        return True

    def _interval(self) -> str:
        low = self.min_bytes if self.min_bytes is not None else 0
        high = self.max_bytes if self.max_bytes is not None else "Inf"
        return f"<{low}; {high}>"
