"""Service daemon probes via systemctl."""

from __future__ import annotations

import time
from collections.abc import Callable

from naswatch.checks.types import Check, CheckResult, Level
from naswatch.probes.exec import DEFAULT_TIMEOUT_SECONDS, run_command


def service_active(service: str, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> bool:
    return run_command(["systemctl", "is-active", "--quiet", service], timeout=timeout).ok


class ServiceDaemonCheck(Check):
    """Ensure a daemon is running, starting it once if it is not.

    ``action`` is the systemctl verb used for recovery ("start" or
    "restart"). After recovery the check waits ``grace_seconds`` and asks
    again; a daemon that is still down is CRITICAL.
    """

    mutates_shared_state = True

    def __init__(
        self,
        service: str,
        *,
        action: str = "start",
        grace_seconds: float = 0.0,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if action not in ("start", "restart"):
            raise ValueError(f"unsupported systemctl action: {action!r}")
        self.service = service
        self.action = action
        self.grace_seconds = grace_seconds
        self.timeout = timeout
        self.sleep = sleep
        self.name = f"Daemon {service}"

    def run(self) -> CheckResult:
        if service_active(self.service, timeout=self.timeout):
            return CheckResult(
                name=self.name,
                level=Level.INFO,
                message=f"{self.service} active.",
                code="ACTIVE",
            )

        recovery = run_command(["systemctl", self.action, self.service], timeout=self.timeout)
        if recovery.ok:
            self.sleep(self.grace_seconds)
        if recovery.ok and service_active(self.service, timeout=self.timeout):
            return CheckResult(
                name=self.name,
                level=Level.WARNING,
                message=f"{self.service} was stopped; {self.action} succeeded after {self.grace_seconds:g}s grace.",
                code="RESTORED",
            )
        return CheckResult(
            name=self.name,
            level=Level.CRITICAL,
            message=f"{self.service} is down and failed to {self.action}.",
            detail=tuple(recovery.output_lines),
            code="DOWN",
        )
