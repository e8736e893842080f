"""Step contract shared by built-in, custom, and plugin validation steps.

Every validation unit implements the same lifecycle:

1. :meth:`Step.setup`: called once per scan; may enable or disable the step
   based on its configuration and the :class:`ScanContext`.
2. :meth:`Step.run`: called once per scan when enabled; reports rejected
   files to the :class:`~fileinspector.core.result.Result` ledger and may set
   :attr:`Step.fatal` (abort the whole scan) or :attr:`Step.aborted` (this
   step could not finish).
3. :meth:`Step.cleanup`: called once per scan whether or not the step ran.

:meth:`Step.summary` then yields the step's own response code: its
:attr:`error_code` if any file was reported invalid, ``OK`` otherwise.

Example, a custom step::

    class NoEmptyFiles(Step):
        name = "Empty File Check"
        error_code = 100

        def run(self, context, result):
            for file in context.files:
                if file.stat().st_size == 0:
                    self.report_invalid(result, file, f"{file} is empty")
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar

from fileinspector.core.codes import ResponseCode
from fileinspector.core.extensions import file_extension, normalise_extension
from fileinspector.core.result import Result
from fileinspector.core.scan_context import ScanContext

logger = logging.getLogger(__name__)


class Step(ABC):
    """Abstract base class for a validation step.

    Subclasses set :attr:`name` and :attr:`error_code` and implement
    :meth:`run`.  Override :meth:`setup` to decide enablement per scan and
    :meth:`cleanup` to release resources acquired in :meth:`run`.

    Attributes:
        fatal: Set during :meth:`run` when the whole scan must abort.
        aborted: Set during :meth:`run` when the step could not complete.
            Unlike :attr:`fatal` this does not invalidate the scan.
    """

    name: ClassVar[str] = "Unnamed step"
    error_code: ClassVar[int] = ResponseCode.FATAL

    def __init__(self, *, enabled: bool = True) -> None:
        self._enabled = enabled
        self._failed = False
        self.fatal = False
        self.aborted = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Clear per-scan outcome flags.  Called before :meth:`setup`."""
        self._failed = False
        self.fatal = False
        self.aborted = False

    def setup(self, context: ScanContext) -> None:
        """Prepare for a scan of *context*.  The default does nothing."""

    @abstractmethod
    def run(self, context: ScanContext, result: Result) -> None:
        """Check the files in *context* and report outcomes to *result*."""

    def cleanup(self) -> None:
        """Release resources held from :meth:`run`.  The default does nothing."""

    # ------------------------------------------------------------------
    # Enablement
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def summary(self) -> int:
        return self.error_code if self._failed else ResponseCode.OK

    def report_invalid(self, result: Result, file: Path, message: str) -> None:
        logger.info("%s rejected %s: %s", self.name, file, message)
        self._failed = True
        result.mark_invalid(file, self.error_code, message)

    def report_valid(self, file: Path) -> None:
        logger.debug("%s accepted %s", self.name, file)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} enabled={self._enabled}>"


class FormatSpecificValidator(Step):
    """Base class for validators shipped in optional plugin bundles.

    A format-specific validator only looks at files whose extension appears
    in :attr:`extensions`.  Subclasses implement :meth:`validate`, returning
    ``None`` for a sound file or a message describing the defect.
    """

    extensions: ClassVar[frozenset[str]] = frozenset()

    def applicable_files(self, context: ScanContext) -> list[Path]:
        wanted = {normalise_extension(e) for e in self.extensions}
        return [f for f in context.files if file_extension(f) in wanted]

    def run(self, context: ScanContext, result: Result) -> None:
        for file in self.applicable_files(context):
            try:
                problem = self.validate(file)
            except OSError as exc:
                problem = f"{file} could not be read: {exc}"
            if problem is None:
                self.report_valid(file)
            else:
                self.report_invalid(result, file, problem)

    @abstractmethod
    def validate(self, file: Path) -> str | None:
        """Return ``None`` if *file* is a sound instance of its format."""
