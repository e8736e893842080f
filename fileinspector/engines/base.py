"""Abstract local AV engine interface.

The :class:`~fileinspector.core.steps.av_scan.AVScan` gating step depends only
on :class:`AVEngine`.  The default implementation launches an external
scanner executable (:class:`~fileinspector.engines.process.SubprocessAVEngine`);
:class:`~fileinspector.engines.clamd.ClamdAVEngine` talks to a running
``clamd`` daemon instead.  The engine class is picked from configuration at
runtime by :func:`~fileinspector.engines.build_av_engine`.

Usage::

    from fileinspector.engines.base import AVEngine, AVVerdict

    class MyEngine(AVEngine):
        def scan_directory(self, path: Path) -> AVVerdict:
            ...

        def ping(self) -> bool:
            ...
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class AVVerdict:
    """Outcome of scanning a directory with a local AV engine.

    Attributes:
        infected: ``True`` when the engine reported malware.
        engine: Name of the engine that produced the verdict.
        exit_code: Process exit status for subprocess engines, ``None``
            otherwise.
        threats: Threat names reported by the engine, where available.
    """

    infected: bool
    engine: str
    exit_code: int | None = None
    threats: tuple[str, ...] = field(default_factory=tuple)


class AVEngineError(Exception):
    """Raised when the AV engine cannot be launched, reached, or understood.

    A configured AV engine is a mandatory dependency of the scan; callers
    treat this as a fatal scan outcome rather than letting files through.
    """


class AVEngine(ABC):
    """Abstract interface for local antivirus engines.

    Implementations scan a whole directory (or single file) in one call and
    block until the engine has finished.
    """

    name: str = "unknown"

    @abstractmethod
    def scan_directory(self, path: Path) -> AVVerdict:
        """Scan everything under *path* and return the verdict.

        Raises:
            AVEngineError: If the engine cannot complete the scan.
        """

    @abstractmethod
    def ping(self) -> bool:
        """Return ``True`` if the engine looks usable.  Must never raise."""
