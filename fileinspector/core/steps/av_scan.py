"""Local antivirus gating step."""

from __future__ import annotations

import logging

from fileinspector.core.codes import ResponseCode
from fileinspector.core.result import Result
from fileinspector.core.scan_context import ScanContext
from fileinspector.core.steps.base import Step
from fileinspector.engines.base import AVEngine, AVEngineError

logger = logging.getLogger(__name__)


class AVScan(Step):
    """Runs the configured local AV engine over the scan path.

    Any infection sets :attr:`fatal` and rejects every file in the scan: the
    engine reports on the directory as a whole.  An engine that cannot be
    started or reached is also fatal, since a configured engine is a
    mandatory dependency.

    Args:
        engine: Engine to run, or ``None`` to leave the step disabled.
    """

    name = "Antivirus scan"
    error_code = ResponseCode.FATAL

    def __init__(self, engine: AVEngine | None = None) -> None:
        super().__init__(enabled=engine is not None)
        self.engine = engine

    def setup(self, context: ScanContext) -> None:
        if self.engine is None:
            self.disable()

    def run(self, context: ScanContext, result: Result) -> None:
        try:
            if self.engine is None:
                raise AVEngineError("no AV engine configured")
            verdict = self.engine.scan_directory(context.scan_path)
        except AVEngineError as exc:
            logger.error("AV engine failed: %s", exc)
            self.fatal = True
            result.errors.append(f"step={self.name} error={exc}")
            self._reject_all(context, result, f"AV engine failed, files could not be cleared: {exc}")
            return

        if verdict.infected:
            self.fatal = True
            detail = f" ({', '.join(verdict.threats)})" if verdict.threats else ""
            self._reject_all(
                context, result, f"AV scan detected a virus in scanned files{detail}. Aborting."
            )
        else:
            for file in context.files:
                self.report_valid(file)

    def _reject_all(self, context: ScanContext, result: Result, message: str) -> None:
        for file in context.files:
            self.report_invalid(result, file, message)
