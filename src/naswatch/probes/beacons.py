"""Listening-port checks for services advertised on the LAN."""

from __future__ import annotations

from naswatch.checks.types import Check, CheckResult, Level
from naswatch.probes.exec import DEFAULT_TIMEOUT_SECONDS, ExecResult, run_command


def listening_snapshot(*, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> ExecResult:
    return run_command(["ss", "-tuln"], timeout=timeout)


def listening_ports(output: str) -> frozenset[int]:
    """Local ports from ``ss -tuln`` output."""
    ports: set[int] = set()
    for line in output.splitlines():
        fields = line.split()
        if len(fields) < 5 or fields[0] == "Netid":
            continue
        _, _, port = fields[4].rpartition(":")
        if port.isdigit():
            ports.add(int(port))
    return frozenset(ports)


class BeaconCheck(Check):
    """One service must be listening on its port.

    The socket table is captured once per stage and shared by every beacon.
    """

    def __init__(self, service: str, port: int, *, ports: frozenset[int], missing_level: Level = Level.WARNING) -> None:
        self.service = service
        self.port = port
        self.ports = ports
        self.missing_level = missing_level
        self.name = f"Beacon {service}"

    def run(self) -> CheckResult:
        if self.port in self.ports:
            return CheckResult(
                name=self.name,
                level=Level.INFO,
                message=f"{self.service} listening on port {self.port}.",
                code="LISTENING",
            )
        return CheckResult(
            name=self.name,
            level=self.missing_level,
            message=f"{self.service} is NOT listening on port {self.port}.",
            code="SILENT",
        )
