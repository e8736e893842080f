"""Unit tests for the step contract and the simple built-in steps.

Coverage:
- :class:`~fileinspector.core.steps.base.Step` lifecycle flags and summary
- :class:`~fileinspector.core.steps.Extension` whitelist and enablement
- :class:`~fileinspector.core.steps.Checksum` digest whitelist
- :class:`~fileinspector.core.steps.Size` optional bounds
"""
from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from fileinspector.core.codes import ResponseCode
from fileinspector.core.hashing import file_digest
from fileinspector.core.result import Result
from fileinspector.core.scan_context import prepare_context
from fileinspector.core.steps import Checksum, Extension, Size, Step


def _run(step: Step, scan_dir: Path) -> Result:
    context = prepare_context(scan_dir)
    result = Result()
    result.mark_all_valid(context.files)
    step.reset()
    step.setup(context)
    if step.enabled:
        step.run(context, result)
    return result


# ---------------------------------------------------------------------------
# Step base class
# ---------------------------------------------------------------------------


class _RejectFirst(Step):
    name = "Reject First"
    error_code = 77

    def run(self, context, result):
        self.report_invalid(result, context.files[0], "first file rejected")


class TestStepContract:
    def test_cannot_instantiate_abstract_step(self) -> None:
        with pytest.raises(TypeError):
            Step()  # type: ignore[abstract]

    def test_custom_step_enabled_by_default(self) -> None:
        step = _RejectFirst()
        assert step.enabled is True
        step.disable()
        assert step.enabled is False
        step.enable()
        assert step.enabled is True

    def test_summary_ok_until_a_file_is_rejected(self, make_file, scan_dir: Path) -> None:
        make_file("a.txt")
        step = _RejectFirst()
        assert step.summary() == ResponseCode.OK
        result = _run(step, scan_dir)
        assert step.summary() == 77
        assert result.invalid_files[0].code == 77

    def test_reset_clears_outcome_flags(self, make_file, scan_dir: Path) -> None:
        make_file("a.txt")
        step = _RejectFirst()
        _run(step, scan_dir)
        step.fatal = True
        step.aborted = True
        step.reset()
        assert step.summary() == ResponseCode.OK
        assert step.fatal is False
        assert step.aborted is False


# ---------------------------------------------------------------------------
# Extension
# ---------------------------------------------------------------------------


class TestExtension:
    def test_disabled_when_whitelist_empty(self) -> None:
        assert Extension().enabled is False

    def test_adding_then_removing_only_entry_restores_disabled(self) -> None:
        step = Extension()
        step.add_restriction("pdf")
        assert step.enabled is True
        step.remove_restriction(".PDF")
        assert step.enabled is False
        assert step.allowed == frozenset()

    def test_entries_are_normalised(self) -> None:
        step = Extension(["PDF", ".Docx", "txt"])
        assert step.allowed == frozenset({".pdf", ".docx", ".txt"})

    def test_rejects_files_outside_whitelist(self, make_file, scan_dir: Path) -> None:
        make_file("report.PDF")
        bad = make_file("script.exe")
        step = Extension([".pdf"])

        result = _run(step, scan_dir)

        assert [i.file for i in result.invalid_files] == [bad]
        invalid = result.invalid_files[0]
        assert invalid.code == ResponseCode.EXTENSION
        assert ".exe" in invalid.message
        assert ".pdf" in invalid.message
        assert step.summary() == ResponseCode.EXTENSION

    def test_file_without_extension_is_rejected(self, make_file, scan_dir: Path) -> None:
        make_file("README")
        result = _run(Extension([".txt"]), scan_dir)
        assert "(none)" in result.invalid_files[0].message


# ---------------------------------------------------------------------------
# Checksum
# ---------------------------------------------------------------------------


class TestChecksum:
    def test_disabled_when_whitelist_empty(self) -> None:
        step = Checksum()
        assert step.enabled is False
        step.add_allowed_checksum("abc")
        assert step.enabled is True
        step.remove_allowed_checksum("ABC")
        assert step.enabled is False

    def test_unknown_algorithm_rejected_at_construction(self) -> None:
        with pytest.raises(ValueError):
            Checksum(algorithm="not-a-hash")

    def test_file_digest_matches_hashlib(self, make_file) -> None:
        path = make_file("a.bin", b"x" * 200_000)
        assert file_digest(path) == hashlib.md5(b"x" * 200_000).hexdigest()
        assert file_digest(path, "sha256") == hashlib.sha256(b"x" * 200_000).hexdigest()

    def test_whitelisted_digest_passes(self, make_file, scan_dir: Path) -> None:
        make_file("a.txt", b"alpha")
        step = Checksum([hashlib.md5(b"alpha").hexdigest().upper()])
        result = _run(step, scan_dir)
        assert result.invalid_files == []
        assert step.summary() == ResponseCode.OK

    def test_unlisted_digest_reports_actual_and_whitelist(self, make_file, scan_dir: Path) -> None:
        make_file("a.txt", b"alpha")
        make_file("b.txt", b"beta")
        allowed = hashlib.md5(b"alpha").hexdigest()
        step = Checksum([allowed])

        result = _run(step, scan_dir)

        assert len(result.invalid_files) == 1
        invalid = result.invalid_files[0]
        assert invalid.file.name == "b.txt"
        assert invalid.code == ResponseCode.CHECKSUM
        assert hashlib.md5(b"beta").hexdigest() in invalid.message
        assert allowed in invalid.message

    def test_sha256_algorithm(self, make_file, scan_dir: Path) -> None:
        make_file("a.txt", b"alpha")
        step = Checksum([hashlib.sha256(b"alpha").hexdigest()], algorithm="sha256")
        assert _run(step, scan_dir).invalid_files == []

    def test_unreadable_file_is_rejected(self, make_file, scan_dir: Path, monkeypatch) -> None:
        make_file("a.txt", b"alpha")

        def _boom(path, algorithm="md5"):
            raise PermissionError("denied")

        monkeypatch.setattr("fileinspector.core.steps.checksum.file_digest", _boom)
        result = _run(Checksum(["00"]), scan_dir)
        assert "could not be read" in result.invalid_files[0].message


# ---------------------------------------------------------------------------
# Size
# ---------------------------------------------------------------------------


class TestSize:
    def test_disabled_without_bounds(self, scan_dir: Path) -> None:
        step = Size()
        step.setup(prepare_context(scan_dir))
        assert step.enabled is False

    @pytest.mark.parametrize("bounds", [(10, None), (None, 10), (1, 10)])
    def test_enabled_with_any_bound(self, scan_dir: Path, bounds) -> None:
        step = Size(*bounds)
        step.setup(prepare_context(scan_dir))
        assert step.enabled is True

    def test_invalid_bounds_rejected(self) -> None:
        with pytest.raises(ValueError):
            Size(-1, None)
        with pytest.raises(ValueError):
            Size(10, 5)

    def test_min_bound_only(self, make_file, scan_dir: Path) -> None:
        make_file("small.txt", b"ab")
        make_file("large.txt", b"a" * 100)
        result = _run(Size(min_bytes=10), scan_dir)
        assert [i.file.name for i in result.invalid_files] == ["small.txt"]
        assert "<10; Inf>" in result.invalid_files[0].message

    def test_max_bound_only(self, make_file, scan_dir: Path) -> None:
        make_file("small.txt", b"ab")
        make_file("large.txt", b"a" * 100)
        result = _run(Size(max_bytes=10), scan_dir)
        assert [i.file.name for i in result.invalid_files] == ["large.txt"]
        assert result.invalid_files[0].code == ResponseCode.SIZE

    def test_bounds_are_inclusive(self, make_file, scan_dir: Path) -> None:
        make_file("exact.txt", b"a" * 10)
        assert _run(Size(10, 10), scan_dir).invalid_files == []
