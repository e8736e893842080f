"""Unit tests for the local AV engines and the AVScan gating step.

The subprocess engine is exercised against the running Python interpreter
standing in for a scanner binary.  The clamd engine is tested with a mocked
client so no daemon is required.
"""
from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from fileinspector.core.codes import ResponseCode
from fileinspector.core.result import Result
from fileinspector.core.scan_context import prepare_context
from fileinspector.core.steps import AVScan
from fileinspector.engines import AVEngineError, AVVerdict, SubprocessAVEngine, build_av_engine
from fileinspector.engines.base import AVEngine
from fileinspector.engines.process import build_command


def _python_scanner(exit_code: int) -> SubprocessAVEngine:
    script = f"import sys; print('scanning', sys.argv[1]); sys.exit({exit_code})"
    return SubprocessAVEngine(sys.executable, f'-c "{script}"')


class _StaticEngine(AVEngine):
    name = "static"

    def __init__(self, verdict: AVVerdict | None = None, error: Exception | None = None) -> None:
        self.verdict = verdict
        self.error = error
        self.scanned: list[Path] = []

    def scan_directory(self, path: Path) -> AVVerdict:
        self.scanned.append(path)
        if self.error is not None:
            raise self.error
        assert self.verdict is not None
        return self.verdict

    def ping(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Command building
# ---------------------------------------------------------------------------


class TestBuildCommand:
    def test_path_appended_without_placeholder(self) -> None:
        assert build_command("clamscan", "-r --no-summary", Path("/data")) == [
            "clamscan",
            "-r",
            "--no-summary",
            "/data",
        ]

    def test_placeholder_replaced(self) -> None:
        assert build_command("scan.exe", "-Scan -File {path} -Quiet", Path("/data")) == [
            "scan.exe",
            "-Scan",
            "-File",
            "/data",
            "-Quiet",
        ]

    def test_empty_arguments(self) -> None:
        assert build_command("clamscan", "", Path("/data")) == ["clamscan", "/data"]

    def test_quoted_arguments_kept_together(self) -> None:
        assert build_command("av", '--log "my log.txt"', Path("/d")) == [
            "av",
            "--log",
            "my log.txt",
            "/d",
        ]


# ---------------------------------------------------------------------------
# SubprocessAVEngine
# ---------------------------------------------------------------------------


class TestSubprocessAVEngine:
    def test_zero_exit_is_clean(self, scan_dir: Path) -> None:
        verdict = _python_scanner(0).scan_directory(scan_dir)
        assert verdict.infected is False
        assert verdict.exit_code == 0
        assert verdict.engine == "subprocess"

    def test_nonzero_exit_is_infected(self, scan_dir: Path) -> None:
        verdict = _python_scanner(1).scan_directory(scan_dir)
        assert verdict.infected is True
        assert verdict.exit_code == 1

    def test_output_is_logged(self, scan_dir: Path, caplog) -> None:
        with caplog.at_level("INFO", logger="fileinspector.engines.process"):
            _python_scanner(0).scan_directory(scan_dir)
        assert f"scanning {scan_dir}" in caplog.text

    def test_missing_executable_raises(self, scan_dir: Path, tmp_path: Path) -> None:
        engine = SubprocessAVEngine(str(tmp_path / "no-such-scanner"))
        with pytest.raises(AVEngineError):
            engine.scan_directory(scan_dir)

    def test_ping(self, tmp_path: Path) -> None:
        assert SubprocessAVEngine(sys.executable).ping() is True
        assert SubprocessAVEngine(str(tmp_path / "missing")).ping() is False


# ---------------------------------------------------------------------------
# ClamdAVEngine
# ---------------------------------------------------------------------------


class TestClamdAVEngine:
    @pytest.fixture
    def engine(self):
        pytest.importorskip("clamd")
        from fileinspector.engines.clamd import ClamdAVEngine

        engine = ClamdAVEngine(host="clamav.internal", port=3310)
        engine._client = MagicMock()
        return engine

    def test_clean_response(self, engine, scan_dir: Path) -> None:
        engine._client.multiscan.return_value = {str(scan_dir): ("OK", None)}
        verdict = engine.scan_directory(scan_dir)
        assert verdict.infected is False
        assert verdict.engine == "clamd"

    def test_found_response_lists_threats(self, engine, scan_dir: Path) -> None:
        engine._client.multiscan.return_value = {
            str(scan_dir / "a.exe"): ("FOUND", "Win.Test.EICAR_HDB-1"),
        }
        verdict = engine.scan_directory(scan_dir)
        assert verdict.infected is True
        assert verdict.threats == ("Win.Test.EICAR_HDB-1",)

    def test_error_response_raises(self, engine, scan_dir: Path) -> None:
        engine._client.multiscan.return_value = {
            str(scan_dir): ("ERROR", "Permission denied"),
        }
        with pytest.raises(AVEngineError, match="Permission denied"):
            engine.scan_directory(scan_dir)

    def test_connection_error_raises(self, engine, scan_dir: Path) -> None:
        import clamd

        engine._client.multiscan.side_effect = clamd.ConnectionError("refused")
        with pytest.raises(AVEngineError, match="unreachable"):
            engine.scan_directory(scan_dir)

    def test_ping_never_raises(self, engine) -> None:
        engine._client.ping.side_effect = OSError("down")
        assert engine.ping() is False


# ---------------------------------------------------------------------------
# Engine selection
# ---------------------------------------------------------------------------


class TestBuildAVEngine:
    def test_none_without_executable(self, settings) -> None:
        assert build_av_engine(settings) is None

    def test_subprocess_engine_from_settings(self, settings) -> None:
        settings = settings.model_copy(
            update={"av_executable": "/usr/bin/clamscan", "av_arguments": "-r"}
        )
        engine = build_av_engine(settings)
        assert isinstance(engine, SubprocessAVEngine)
        assert engine.executable == "/usr/bin/clamscan"
        assert engine.arguments == "-r"

    def test_clamd_engine_from_settings(self, settings) -> None:
        pytest.importorskip("clamd")
        from fileinspector.engines.clamd import ClamdAVEngine

        settings = settings.model_copy(update={"av_engine": "clamd"})
        assert isinstance(build_av_engine(settings), ClamdAVEngine)


# ---------------------------------------------------------------------------
# AVScan step
# ---------------------------------------------------------------------------


class TestAVScanStep:
    def _run(self, step: AVScan, scan_dir: Path) -> Result:
        context = prepare_context(scan_dir)
        result = Result()
        result.mark_all_valid(context.files)
        step.reset()
        step.setup(context)
        step.run(context, result)
        return result

    def test_disabled_without_engine(self) -> None:
        assert AVScan().enabled is False

    def test_clean_scan_keeps_files_valid(self, make_file, scan_dir: Path) -> None:
        make_file("a.txt")
        engine = _StaticEngine(AVVerdict(infected=False, engine="static"))
        step = AVScan(engine)

        result = self._run(step, scan_dir)

        assert engine.scanned == [scan_dir]
        assert step.fatal is False
        assert step.summary() == ResponseCode.OK
        assert len(result.valid_files) == 1

    def test_infection_is_fatal_and_rejects_every_file(self, make_file, scan_dir: Path) -> None:
        make_file("a.txt")
        make_file("b.txt")
        step = AVScan(_StaticEngine(AVVerdict(infected=True, engine="static", threats=("EICAR",))))

        result = self._run(step, scan_dir)

        assert step.fatal is True
        assert result.valid_files == []
        assert {i.code for i in result.invalid_files} == {ResponseCode.FATAL}
        assert "EICAR" in result.invalid_files[0].message

    def test_running_without_engine_is_fatal(self, make_file, scan_dir: Path) -> None:
        make_file("a.txt")
        step = AVScan()

        result = self._run(step, scan_dir)

        assert step.fatal is True
        assert result.valid_files == []
        assert any("no AV engine configured" in e for e in result.errors)

    def test_engine_failure_is_fatal(self, make_file, scan_dir: Path) -> None:
        make_file("a.txt")
        step = AVScan(_StaticEngine(error=AVEngineError("cannot start")))

        result = self._run(step, scan_dir)

        assert step.fatal is True
        assert result.valid_files == []
        assert any("cannot start" in e for e in result.errors)
