"""Checksum whitelist step."""

from __future__ import annotations

import hashlib
import logging
from typing import Iterable

from fileinspector.core.codes import ResponseCode
from fileinspector.core.hashing import file_digest
from fileinspector.core.result import Result
from fileinspector.core.scan_context import ScanContext
from fileinspector.core.steps.base import Step

logger = logging.getLogger(__name__)


class Checksum(Step):
    """Rejects files whose content digest is not on the whitelist.

    The step is disabled while the whitelist is empty.  Rejection messages
    carry the computed digest and the whole whitelist so operators can see
    what was expected.

    Args:
        allowed: Initial whitelist of hex digests (case-insensitive).
        algorithm: Any :func:`hashlib.new` algorithm name.  Defaults to MD5.
    """

    name = "Checksum Verification"
    error_code = ResponseCode.CHECKSUM

    def __init__(self, allowed: Iterable[str] = (), algorithm: str = "md5") -> None:
        super().__init__(enabled=False)
        hashlib.new(algorithm)  # ValueError on unknown algorithms
        self._algorithm = algorithm
        self._allowed: set[str] = set()
        for digest in allowed:
            self.add_allowed_checksum(digest)

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def allowed(self) -> frozenset[str]:
        return frozenset(self._allowed)

    def add_allowed_checksum(self, digest: str) -> None:
        self._allowed.add(digest.strip().lower())
        self._sync_enablement()

    def remove_allowed_checksum(self, digest: str) -> None:
        self._allowed.discard(digest.strip().lower())
        self._sync_enablement()

    def setup(self, context: ScanContext) -> None:
        self._sync_enablement()

    def run(self, context: ScanContext, result: Result) -> None:
        for file in context.files:
            try:
                digest = file_digest(file, self._algorithm)
            except OSError as exc:
                logger.warning("Could not hash %s: %s", file, exc)
                self.report_invalid(result, file, f"{file} could not be read for hashing: {exc}")
                continue

            if digest in self._allowed:
                self.report_valid(file)
            else:
                self.report_invalid(
                    result,
                    file,
                    f"{file} has disallowed {self._algorithm.upper()} checksum. "
                    f"Actual: {digest}; Expected: {', '.join(sorted(self._allowed))}",
                )

    def _sync_enablement(self) -> None:
        if self._allowed:
            self.enable()
        else:
            self.disable()
