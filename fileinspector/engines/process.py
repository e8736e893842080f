"""External-executable AV engine.

Runs a caller-configured scanner (``clamscan``, ``MpCmdRun.exe``, ...) as a
child process and waits for it.  The contract is the usual one for command
line scanners: exit status ``0`` means clean, anything else means infected.
Standard output is drained line by line into the log so a chatty scanner
cannot stall on a full pipe.
"""
from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path

from fileinspector.engines.base import AVEngine, AVEngineError, AVVerdict

logger = logging.getLogger(__name__)

# Placeholder in the argument string replaced by the scan path.
PATH_PLACEHOLDER = "{path}"


def build_command(executable: str, arguments: str, scan_path: Path) -> list[str]:
    """Return the argv list for scanning *scan_path*.

    When *arguments* contains ``{path}`` each occurrence is replaced by the
    scan path; otherwise the scan path is appended as the last argument.
    """
    args = shlex.split(arguments) if arguments else []
    if any(PATH_PLACEHOLDER in arg for arg in args):
        args = [arg.replace(PATH_PLACEHOLDER, str(scan_path)) for arg in args]
    else:
        args.append(str(scan_path))
    return [executable, *args]


class SubprocessAVEngine(AVEngine):
    """AV engine backed by an external executable.

    Args:
        executable: Path to (or name on ``PATH`` of) the scanner binary.
        arguments: Argument string, parsed with :func:`shlex.split`.  May
            contain ``{path}`` to position the scan path.

    Example::

        engine = SubprocessAVEngine("/usr/bin/clamscan", "-r --no-summary {path}")
        verdict = engine.scan_directory(Path("/srv/uploads/batch-42"))
    """

    name = "subprocess"

    def __init__(self, executable: str, arguments: str = "") -> None:
        self.executable = executable
        self.arguments = arguments

    def scan_directory(self, path: Path) -> AVVerdict:
        command = build_command(self.executable, self.arguments, path)
        logger.info("Starting AV engine: %s", " ".join(command))

        try:
            with subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
            ) as process:
                for line in process.stdout or ():
                    logger.info("[av] %s", line.rstrip())
                logger.info("Waiting for AV scan to finish")
                exit_code = process.wait()
        except OSError as exc:
            raise AVEngineError(f"AV engine {self.executable!r} could not be started: {exc}") from exc

        logger.info("AV engine exited with status %d", exit_code)
        return AVVerdict(infected=exit_code != 0, engine=self.name, exit_code=exit_code)

    def ping(self) -> bool:
        if os.path.sep in self.executable:
            return os.path.isfile(self.executable) and os.access(self.executable, os.X_OK)
        return shutil.which(self.executable) is not None
