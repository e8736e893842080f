"""Unit tests for :class:`~fileinspector.core.evaluator.Evaluator`."""
from __future__ import annotations

from fileinspector.core.codes import ResponseCode
from fileinspector.core.evaluator import Evaluator


class TestEvaluator:
    def test_starts_ok(self) -> None:
        assert Evaluator().result() == ResponseCode.OK

    def test_ok_outcomes_keep_ok(self) -> None:
        evaluator = Evaluator()
        for _ in range(3):
            evaluator.fold(ResponseCode.OK)
        assert evaluator.result() == ResponseCode.OK

    def test_single_failure_carries_its_code(self) -> None:
        evaluator = Evaluator()
        evaluator.fold(ResponseCode.OK)
        evaluator.fold(ResponseCode.CHECKSUM)
        evaluator.fold(ResponseCode.OK)
        assert evaluator.result() == ResponseCode.CHECKSUM

    def test_two_different_failures_escalate_to_multiple(self) -> None:
        evaluator = Evaluator()
        evaluator.fold(ResponseCode.EXTENSION)
        evaluator.fold(ResponseCode.SIZE)
        assert evaluator.result() == ResponseCode.MULTIPLE

    def test_two_identical_failures_still_escalate_to_multiple(self) -> None:
        evaluator = Evaluator()
        evaluator.fold(ResponseCode.EXTENSION)
        evaluator.fold(ResponseCode.EXTENSION)
        assert evaluator.result() == ResponseCode.MULTIPLE

    def test_multiple_is_permanent(self) -> None:
        evaluator = Evaluator()
        evaluator.fold(ResponseCode.EXTENSION)
        evaluator.fold(ResponseCode.SIGNATURE)
        evaluator.fold(ResponseCode.OK)
        evaluator.fold(ResponseCode.OK)
        assert evaluator.result() == ResponseCode.MULTIPLE

    def test_plugin_codes_share_the_code_space(self) -> None:
        evaluator = Evaluator()
        evaluator.fold(100)
        assert evaluator.result() == 100
        evaluator.fold(101)
        assert evaluator.result() == ResponseCode.MULTIPLE
