"""Host firewall (ufw) state and required rules."""

from __future__ import annotations

from naswatch.checks.types import Check, CheckResult, Level
from naswatch.probes.exec import DEFAULT_TIMEOUT_SECONDS, ExecResult, run_command

ACTIVE_MARKER = "Status: active"


def ufw_status(*, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> ExecResult:
    return run_command(["ufw", "status"], timeout=timeout)


def firewall_active(status: ExecResult) -> bool:
    return status.ok and ACTIVE_MARKER in status.stdout


class UfwStatusCheck(Check):
    """Firewall must be active; optionally re-enable it once."""

    def __init__(self, *, enable_if_inactive: bool = True, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.enable_if_inactive = enable_if_inactive
        self.timeout = timeout
        self.name = "Firewall status"

    @property
    def mutates_shared_state(self) -> bool:  # type: ignore[override]
        return self.enable_if_inactive

    def run(self) -> CheckResult:
        if firewall_active(ufw_status(timeout=self.timeout)):
            return CheckResult(name=self.name, level=Level.SUCCESS, message="UFW is active.", code="ACTIVE")

        if not self.enable_if_inactive:
            return CheckResult(
                name=self.name,
                level=Level.CRITICAL,
                message="UFW is inactive.",
                code="INACTIVE",
            )

        enabled = run_command(["ufw", "--force", "enable"], timeout=self.timeout)
        if enabled.ok and firewall_active(ufw_status(timeout=self.timeout)):
            return CheckResult(
                name=self.name,
                level=Level.SUCCESS,
                message="UFW was inactive and has been re-enabled.",
                code="RESTORED",
            )
        return CheckResult(
            name=self.name,
            level=Level.CRITICAL,
            message="UFW is inactive and could not be enabled.",
            detail=tuple(enabled.output_lines),
            code="INACTIVE",
        )


class UfwRuleCheck(Check):
    """A required rule fragment must appear in ``ufw status`` output."""

    def __init__(self, rule: str, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.rule = rule
        self.timeout = timeout
        self.name = f"Firewall rule {rule}"

    def run(self) -> CheckResult:
        status = ufw_status(timeout=self.timeout)
        if not status.ok:
            return CheckResult(
                name=self.name,
                level=Level.ERROR,
                message=f"ufw status failed (exit {status.returncode}).",
                detail=tuple(status.output_lines),
                code="QUERY_FAILED",
            )
        if self.rule in status.stdout:
            return CheckResult(name=self.name, level=Level.INFO, message=f"Rule for {self.rule} present.", code="RULE_PRESENT")
        return CheckResult(
            name=self.name,
            level=Level.WARNING,
            message=f"No rule mentions {self.rule}. Review firewall policy.",
            code="RULE_MISSING",
        )
