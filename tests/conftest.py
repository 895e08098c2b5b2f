"""Pytest configuration and fixtures for naswatch tests."""
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

import pytest

from naswatch.logsink import LogSink
from naswatch.probes.exec import ExecResult


def pytest_sessionfinish(session, exitstatus):
    """Fail the run when --cov was requested but no data was collected."""
    cov_enabled = any("--cov" in str(arg) for arg in session.config.args)
    if not cov_enabled:
        return

    if not list(Path.cwd().glob(".coverage*")):
        pytest.exit(
            "Coverage was enabled but no data was collected. "
            "Check that tests import from 'naswatch' (the package) not 'src/naswatch'.",
            returncode=1,
        )


class CommandStub:
    """Stand-in for run_command keyed on the exact argv.

    A list value is consumed one result per call; its last element repeats.
    """

    def __init__(self, outputs: Mapping[tuple[str, ...], ExecResult | list[ExecResult]]):
        self.outputs = {key: list(value) if isinstance(value, list) else [value] for key, value in outputs.items()}
        self.calls: list[tuple[tuple[str, ...], dict[str, str]]] = []

    def __call__(
        self,
        argv: list[str],
        *,
        timeout: float = 120.0,
        env: Mapping[str, str] | None = None,
        check: bool = False,
    ) -> ExecResult:
        _ = (timeout, check)
        key = tuple(argv)
        self.calls.append((key, dict(env or {})))
        if key not in self.outputs:
            raise AssertionError(f"missing stub for argv: {argv}")
        queue = self.outputs[key]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def argvs(self) -> list[tuple[str, ...]]:
        return [argv for argv, _ in self.calls]


@pytest.fixture
def stub_commands(monkeypatch: pytest.MonkeyPatch) -> Callable[..., CommandStub]:
    """Install a CommandStub as ``run_command`` in the given modules."""

    def install(
        outputs: Mapping[tuple[str, ...], ExecResult | list[ExecResult]],
        *modules: str,
    ) -> CommandStub:
        stub = CommandStub(outputs)
        for module in modules:
            monkeypatch.setattr(f"{module}.run_command", stub)
        return stub

    return install


@pytest.fixture
def sink(tmp_path: Path):
    with LogSink("test", tmp_path / "logs", echo=False) as opened:
        yield opened
