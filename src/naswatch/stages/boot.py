"""Boot verification: hardware, mounts, pool, and baseline configuration.

A boot run propagates failure to the exit code and counts non-advisory
warnings as failures, so dependent services never start on a machine
whose disks are suspect.
"""

from __future__ import annotations

from naswatch.checks.types import Check, ExitPolicy
from naswatch.config import BootConfig
from naswatch.probes.baseline import BaselineConfigCheck
from naswatch.probes.hardware import BlockDevicePresenceCheck, SmartHealthCheck
from naswatch.probes.mounts import MountCheck
from naswatch.probes.pool import PoolIntegrityCheck
from naswatch.stages.base import StageContext, StageReport, finish, run_sections

STAGE = "boot"


def build_sections(config: BootConfig, *, timeout: float) -> list[tuple[str, list[Check]]]:
    hardware: list[Check] = [SmartHealthCheck(drive, timeout=timeout) for drive in config.drives]
    hardware.extend(BlockDevicePresenceCheck(device) for device in config.block_devices)

    mounts: list[Check] = [
        MountCheck(mountpoint, writable=True, marker_name=config.probe_marker) for mountpoint in config.mounts_rw
    ]
    mounts.extend(
        MountCheck(mountpoint, writable=False, marker_name=config.probe_marker) for mountpoint in config.mounts_ro
    )

    sections: list[tuple[str, list[Check]]] = [
        ("Running Sensor Sweep (SMART)", hardware),
        ("Verifying Mounts", mounts),
    ]
    if config.pool is not None:
        sections.append(
            (
                "Pool Integrity",
                [
                    PoolIntegrityCheck(
                        config.pool.mountpoint,
                        fs_type=config.pool.fs_type,
                        expected_devices=config.pool.expected_devices,
                        timeout=timeout,
                    )
                ],
            )
        )
    if config.baseline is not None:
        sections.append(
            (
                f"Integrity Check ({config.baseline.live.name})",
                [BaselineConfigCheck(config.baseline.live, config.baseline.template)],
            )
        )
    return sections


def run_boot(config: BootConfig, context: StageContext) -> StageReport:
    context.sink.info("Boot sequence initiated. Running diagnostics...")
    results = run_sections(context, build_sections(config, timeout=context.timeout))
    return finish(
        STAGE,
        "Boot verification",
        context,
        results,
        ExitPolicy.PROPAGATE,
        treat_warning_as_failure=True,
    )
