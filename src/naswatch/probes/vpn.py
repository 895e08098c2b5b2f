"""VPN tunnel probes (Mullvad over WireGuard)."""

from __future__ import annotations

import shutil
import time
from collections.abc import Callable

from naswatch.checks.types import Check, CheckResult, Level
from naswatch.probes.exec import DEFAULT_TIMEOUT_SECONDS, run_command


def interface_up(interface: str, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> bool:
    return run_command(["ip", "link", "show", interface], timeout=timeout).ok


class VpnInterfaceCheck(Check):
    """Tunnel interface must exist; ask the VPN client to connect if not.

    After ``mullvad connect`` the check waits ``grace_seconds`` for the tunnel
    to negotiate before looking at the interface again.
    """

    def __init__(
        self,
        interface: str,
        *,
        reconnect: bool = True,
        grace_seconds: float = 0.0,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.interface = interface
        self.reconnect = reconnect
        self.grace_seconds = grace_seconds
        self.timeout = timeout
        self.sleep = sleep
        self.name = f"VPN interface {interface}"

    @property
    def mutates_shared_state(self) -> bool:  # type: ignore[override]
        return self.reconnect

    def run(self) -> CheckResult:
        if interface_up(self.interface, timeout=self.timeout):
            return CheckResult(
                name=self.name,
                level=Level.SUCCESS,
                message=f"Tunnel interface {self.interface} is up.",
                code="TUNNEL_UP",
            )
        if not self.reconnect:
            return CheckResult(
                name=self.name,
                level=Level.CRITICAL,
                message=f"Tunnel interface {self.interface} is down.",
                code="TUNNEL_DOWN",
            )
        if shutil.which("mullvad") is None:
            return CheckResult(
                name=self.name,
                level=Level.CRITICAL,
                message="Mullvad CLI not found; cannot reconnect.",
                code="CLIENT_MISSING",
            )

        connect = run_command(["mullvad", "connect"], timeout=self.timeout)
        self.sleep(self.grace_seconds)
        if interface_up(self.interface, timeout=self.timeout):
            return CheckResult(
                name=self.name,
                level=Level.WARNING,
                message=f"Tunnel {self.interface} was down; reconnected.",
                code="RECONNECTED",
            )
        return CheckResult(
            name=self.name,
            level=Level.CRITICAL,
            message=f"Tunnel {self.interface} is down and reconnect failed.",
            detail=tuple(connect.output_lines),
            code="TUNNEL_DOWN",
        )
