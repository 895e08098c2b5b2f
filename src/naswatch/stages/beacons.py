"""LAN service beacons: advertised services must be listening."""

from __future__ import annotations

from naswatch.checks.types import Check, CheckResult, ExitPolicy, Level
from naswatch.config import BeaconSpec
from naswatch.probes.beacons import BeaconCheck, listening_ports, listening_snapshot
from naswatch.probes.exec import ExecTimeout
from naswatch.stages.base import StageContext, StageReport, finish, run_sections

STAGE = "beacons"


def run_beacons(beacons: tuple[BeaconSpec, ...], context: StageContext) -> StageReport:
    context.sink.info("Checking network beacons...")
    try:
        snapshot = listening_snapshot(timeout=context.timeout)
    except ExecTimeout as exc:
        snapshot = exc.result
    if not snapshot.ok:
        failure = CheckResult(
            name="Socket table",
            level=Level.ERROR,
            message=f"ss failed (exit {snapshot.returncode}); beacon state unknown.",
            detail=tuple(snapshot.output_lines),
            code="QUERY_FAILED",
        )
        context.sink.record(failure)
        return finish(STAGE, "Beacon check", context, [failure], ExitPolicy.SUPPRESS)

    ports = listening_ports(snapshot.stdout)
    checks: list[Check] = [
        BeaconCheck(beacon.name, beacon.port, ports=ports, missing_level=beacon.level)
        for beacon in beacons
    ]
    results = run_sections(context, [("Listening Services", checks)])
    return finish(STAGE, "Beacon check", context, results, ExitPolicy.SUPPRESS)
