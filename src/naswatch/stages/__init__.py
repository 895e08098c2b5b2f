"""Stage registry: one entry per subsystem run the CLI exposes."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from naswatch.checks.types import ExitPolicy
from naswatch.config import NasConfig
from naswatch.stages.audit import run_audit_stage
from naswatch.stages.backup import run_backup
from naswatch.stages.base import StageContext, StageReport
from naswatch.stages.beacons import run_beacons
from naswatch.stages.boot import run_boot
from naswatch.stages.firewall import run_firewall
from naswatch.stages.scan import run_scan
from naswatch.stages.vpn import run_vpn


@dataclass(frozen=True)
class StageSpec:
    name: str
    description: str
    exit_policy: ExitPolicy
    run: Callable[[NasConfig, StageContext], StageReport]
    # Reset the subsystem log at the start of each run.
    truncate_log: bool = False


STAGES: dict[str, StageSpec] = {
    stage.name: stage
    for stage in (
        StageSpec(
            "boot",
            "Verify disks, mounts, storage pool and baseline config before services start.",
            ExitPolicy.PROPAGATE,
            lambda config, context: run_boot(config.boot, context),
        ),
        StageSpec(
            "audit",
            "Compare live, staged and golden configuration for drift.",
            ExitPolicy.SUPPRESS,
            lambda config, context: run_audit_stage(config.audit, context),
        ),
        StageSpec(
            "backup",
            "Verify backup repository access and snapshot freshness.",
            ExitPolicy.PROPAGATE,
            lambda config, context: run_backup(config.backup, context),
        ),
        StageSpec(
            "firewall",
            "Ensure the firewall is active with required rules.",
            ExitPolicy.PROPAGATE,
            lambda config, context: run_firewall(config.firewall, context),
            truncate_log=True,
        ),
        StageSpec(
            "vpn",
            "Ensure the VPN daemon and tunnel are up.",
            ExitPolicy.PROPAGATE,
            lambda config, context: run_vpn(config.vpn, context),
            truncate_log=True,
        ),
        StageSpec(
            "scan",
            "Run a malware sweep of the data drives.",
            ExitPolicy.PROPAGATE,
            lambda config, context: run_scan(config.scan, context),
        ),
        StageSpec(
            "beacons",
            "Check that LAN services are listening.",
            ExitPolicy.SUPPRESS,
            lambda config, context: run_beacons(config.beacons, context),
            truncate_log=True,
        ),
    )
}


def get_stage(name: str) -> StageSpec:
    try:
        return STAGES[name]
    except KeyError:
        raise KeyError(f"unknown stage {name!r}; expected one of {', '.join(STAGES)}") from None


__all__ = ["STAGES", "StageContext", "StageReport", "StageSpec", "get_stage"]
