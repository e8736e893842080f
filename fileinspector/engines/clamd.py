"""ClamAV daemon AV engine.

Connects to a running ``clamd`` daemon and asks it to scan the scan directory
with ``MULTISCAN``.  The daemon must be able to read the scan path (shared
volume in containerised deployments).
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import clamd

from fileinspector.engines.base import AVEngine, AVEngineError, AVVerdict

logger = logging.getLogger(__name__)

_STATUS_FOUND = "FOUND"
_STATUS_ERROR = "ERROR"


def _parse_multiscan(response: dict[str, tuple[str, str | None]] | None) -> tuple[str, ...]:
    """Return the threat names in a clamd scan response.

    Raises:
        AVEngineError: If clamd reported an ``ERROR`` for any path.
    """
    threats: list[str] = []
    for path, (status, detail) in (response or {}).items():
        if status == _STATUS_FOUND:
            logger.warning("ClamAV detected threat %s in %s", detail, path)
            threats.append(detail or "UNKNOWN")
        elif status == _STATUS_ERROR:
            raise AVEngineError(f"ClamAV could not scan {path}: {detail}")
    return tuple(threats)


class ClamdAVEngine(AVEngine):
    """AV engine that delegates to ``clamd``.

    Args:
        host: Hostname of the daemon.  Ignored when *socket_path* is set.
        port: TCP port of the daemon.
        socket_path: Path of a local Unix socket, if the daemon uses one.
        timeout: Socket timeout in seconds (``None`` waits indefinitely).
    """

    name = "clamd"

    def __init__(
        self,
        host: str = "localhost",
        port: int = 3310,
        socket_path: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._socket_path = socket_path
        self._client: Any
        if socket_path:
            self._client = clamd.ClamdUnixSocket(path=socket_path, timeout=timeout)
        else:
            self._client = clamd.ClamdNetworkSocket(host=host, port=port, timeout=timeout)

    def _target(self) -> str:
        return self._socket_path or f"{self._host}:{self._port}"

    def scan_directory(self, path: Path) -> AVVerdict:
        logger.info("Requesting clamd MULTISCAN of %s via %s", path, self._target())
        try:
            response = self._client.multiscan(str(Path(path).resolve()))
        except clamd.ConnectionError as exc:
            raise AVEngineError(f"ClamAV daemon unreachable at {self._target()}") from exc
        except Exception as exc:  # noqa: BLE001
            raise AVEngineError(f"ClamAV scan failed: {exc}") from exc

        threats = _parse_multiscan(response)
        return AVVerdict(infected=bool(threats), engine=self.name, threats=threats)

    def ping(self) -> bool:
        try:
            self._client.ping()
            return True
        except Exception:  # noqa: BLE001
            return False
