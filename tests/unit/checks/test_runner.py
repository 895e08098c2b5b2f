"""Tests for CheckRunner fault isolation, ordering and cancellation."""

from __future__ import annotations

import threading
import time

import pytest

from naswatch.checks import Check, CheckResult, CheckRunner, FunctionCheck, Level


def _ok(name: str, level: Level = Level.INFO) -> FunctionCheck:
    return FunctionCheck(name, lambda: CheckResult(name=name, level=level, message="ok"))


def _boom() -> CheckResult:
    raise OSError("device vanished")


class _Sleepy(Check):
    def __init__(self, name: str, delay: float) -> None:
        self.name = name
        self.delay = delay

    def run(self) -> CheckResult:
        time.sleep(self.delay)
        return CheckResult(name=self.name, level=Level.INFO, message=f"slept {self.delay}")


def test_fault_becomes_error_result_and_batch_continues() -> None:
    results = CheckRunner().run([_ok("first"), FunctionCheck("faulty", _boom), _ok("last")])
    assert [r.name for r in results] == ["first", "faulty", "last"]
    assert results[1].level is Level.ERROR
    assert results[1].code == "FAULT"
    assert "OSError: device vanished" in results[1].message


def test_non_result_return_is_a_fault() -> None:
    results = CheckRunner().run([FunctionCheck("bad", lambda: "green")])  # type: ignore[arg-type, return-value]
    assert results[0].level is Level.ERROR
    assert "TypeError" in results[0].message


def test_results_are_recorded_to_sink(sink) -> None:
    CheckRunner(sink).run([_ok("alpha"), _ok("beta", Level.WARNING)])
    text = sink.primary_path.read_text(encoding="utf-8")
    assert "[INFO] alpha: ok" in text
    assert "[WARNING] beta: ok" in text


def test_parallel_run_preserves_declaration_order() -> None:
    checks = [_Sleepy("slow", 0.2), _Sleepy("medium", 0.1), _Sleepy("fast", 0.0)]
    results = CheckRunner(max_workers=3).run(checks)
    assert [r.name for r in results] == ["slow", "medium", "fast"]


def test_mutating_checks_never_overlap_readers() -> None:
    active = threading.Event()
    overlaps: list[str] = []

    def reader() -> CheckResult:
        active.set()
        time.sleep(0.05)
        active.clear()
        return CheckResult(name="reader", level=Level.INFO, message="read")

    def writer() -> CheckResult:
        if active.is_set():
            overlaps.append("writer")
        return CheckResult(name="writer", level=Level.INFO, message="wrote")

    checks = [
        FunctionCheck("writer", writer, mutates_shared_state=True),
        FunctionCheck("reader", reader),
    ]
    results = CheckRunner(max_workers=4).run(checks)
    assert [r.name for r in results] == ["writer", "reader"]
    assert overlaps == []


def test_cancelled_run_keeps_length() -> None:
    runner = CheckRunner()

    def cancel_after() -> CheckResult:
        runner.cancel()
        return CheckResult(name="stopper", level=Level.INFO, message="done")

    results = runner.run([FunctionCheck("stopper", cancel_after), _ok("skipped-1"), _ok("skipped-2")])
    assert len(results) == 3
    assert results[0].message == "done"
    assert [r.code for r in results[1:]] == ["CANCELLED", "CANCELLED"]
    assert all(r.level is Level.WARNING for r in results[1:])


def test_rejects_zero_workers() -> None:
    with pytest.raises(ValueError, match="max_workers"):
        CheckRunner(max_workers=0)
