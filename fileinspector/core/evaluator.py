"""Evaluator — folds step outcomes into a single scan response code.

If every step returns ``OK`` the scan is ``OK``.  If exactly one step fails
the scan carries that step's code.  Once a second failing outcome is folded
in the accumulator becomes ``MULTIPLE`` and stays there, even when both
failures share the same code.
"""

from __future__ import annotations

import logging

from fileinspector.core.codes import ResponseCode

logger = logging.getLogger(__name__)


class Evaluator:
    """Scan-scoped response accumulator.  Create one per scan."""

    def __init__(self) -> None:
        self._response: int = ResponseCode.OK

    def fold(self, code: int) -> None:
        if self._response != ResponseCode.OK and code != ResponseCode.OK:
            self._response = ResponseCode.MULTIPLE
        elif code != ResponseCode.OK:
            self._response = code
        logger.debug("Evaluator folded code=%s accumulator=%s", code, self._response)

    def result(self) -> int:
        return self._response
