"""Physical device health probes."""

from __future__ import annotations

import os
import stat
from pathlib import Path

from naswatch.checks.types import Check, CheckResult, Level
from naswatch.probes.exec import DEFAULT_TIMEOUT_SECONDS, run_command

MAX_DETAIL_LINES = 20


class SmartHealthCheck(Check):
    """Ask one drive for its SMART overall-health verdict.

    An unhealthy or unreachable drive is a WARNING rather than CRITICAL: one
    degraded spindle is not a data-path failure. Boot runs still count it
    toward the failure tally.
    """

    def __init__(self, drive: str, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.device = Path("/dev") / drive
        self.timeout = timeout
        self.name = f"SMART {self.device}"

    def run(self) -> CheckResult:
        result = run_command(["smartctl", "-H", str(self.device)], timeout=self.timeout)
        if result.ok:
            return CheckResult(
                name=self.name,
                level=Level.INFO,
                message=f"Drive {self.device} reporting healthy.",
                code="HEALTHY",
            )
        return CheckResult(
            name=self.name,
            level=Level.WARNING,
            message=f"Drive {self.device} reporting health issues or offline (smartctl exit {result.returncode}).",
            detail=tuple(result.output_lines[-MAX_DETAIL_LINES:]),
            code="UNHEALTHY",
        )


def is_block_device(path: Path) -> bool:
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


class BlockDevicePresenceCheck(Check):
    """Presence check for a device that has no SMART support (e.g. eMMC)."""

    def __init__(self, device: Path) -> None:
        self.device = device
        self.name = f"Device {device}"

    def run(self) -> CheckResult:
        if is_block_device(self.device):
            return CheckResult(
                name=self.name,
                level=Level.INFO,
                message=f"{self.device} detected online.",
                code="PRESENT",
            )
        return CheckResult(
            name=self.name,
            level=Level.WARNING,
            message=f"{self.device} not found!",
            code="ABSENT",
        )
