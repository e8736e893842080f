"""Local AV engine adapters for FileInspector.

Import engines via this module to avoid coupling to internal module layout::

    from fileinspector.engines import AVEngine, SubprocessAVEngine, build_av_engine

:class:`~fileinspector.engines.clamd.ClamdAVEngine` is imported on demand so
that the ``clamd`` client library is only needed when that engine is used.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fileinspector.engines.base import AVEngine, AVEngineError, AVVerdict
from fileinspector.engines.process import SubprocessAVEngine

if TYPE_CHECKING:
    from fileinspector.config import Settings

__all__ = [
    "AVEngine",
    "AVEngineError",
    "AVVerdict",
    "SubprocessAVEngine",
    "build_av_engine",
]


def build_av_engine(settings: "Settings") -> AVEngine | None:
    """Return the AV engine selected by *settings*, or ``None`` if none is configured."""
    if settings.av_engine == "clamd":
        from fileinspector.engines.clamd import ClamdAVEngine

        return ClamdAVEngine(
            host=settings.clamd_host,
            port=settings.clamd_port,
            socket_path=settings.clamd_socket_path,
        )
    if settings.av_executable:
        return SubprocessAVEngine(settings.av_executable, settings.av_arguments)
    return None
