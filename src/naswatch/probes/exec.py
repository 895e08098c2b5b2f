"""Bounded command runner for probe adapters."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120.0
COMMAND_NOT_FOUND = 127


@dataclass(frozen=True)
class ExecResult:
    """Result envelope for subprocess execution."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output_lines(self) -> list[str]:
        text = self.stdout if self.stdout.strip() else self.stderr
        return [line for line in text.splitlines() if line.strip()]


class ExecError(RuntimeError):
    """Raised when a command returns non-zero in check mode."""

    def __init__(self, result: ExecResult):
        rendered = " ".join(result.argv)
        detail = (result.stderr or result.stdout).strip()
        super().__init__(f"command failed ({result.returncode}): {rendered}\n{detail}")
        self.result = result


class ExecTimeout(ExecError):
    """Raised when a command exceeds its time budget."""


def run_command(
    argv: list[str],
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    env: Mapping[str, str] | None = None,
    check: bool = False,
) -> ExecResult:
    """Run a command with a hard timeout and return a structured result.

    A missing executable is reported as returncode 127 rather than raised.
    ``env`` entries are added on top of the current environment for the
    child only.
    """
    child_env = None
    if env:
        child_env = {**os.environ, **env}
    try:
        completed = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=child_env,
            check=False,
        )
    except FileNotFoundError:
        result = ExecResult(
            argv=tuple(argv),
            returncode=COMMAND_NOT_FOUND,
            stdout="",
            stderr=f"{argv[0]}: command not found",
        )
    except subprocess.TimeoutExpired as exc:
        logger.warning("command timed out after %ss: %s", timeout, " ".join(argv))
        raise ExecTimeout(
            ExecResult(
                argv=tuple(argv),
                returncode=-1,
                stdout=_text(exc.stdout),
                stderr=f"timed out after {timeout}s",
            )
        ) from exc
    else:
        result = ExecResult(
            argv=tuple(argv),
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )
    if check and not result.ok:
        raise ExecError(result)
    return result


def _text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
