"""Malware sweep of the data drives."""

from __future__ import annotations

from naswatch.checks.types import ExitPolicy
from naswatch.config import ScanConfig
from naswatch.probes.scan import MalwareScanCheck, discover_scan_targets
from naswatch.probes.systemd import ServiceDaemonCheck
from naswatch.stages.base import StageContext, StageReport, finish

STAGE = "scan"


def run_scan(config: ScanConfig, context: StageContext) -> StageReport:
    sink = context.sink
    sink.info("Starting ClamAV security sweep...")
    runner = context.runner()

    sink.section("Scanner Daemon")
    results = runner.run(
        [
            ServiceDaemonCheck(
                config.daemon,
                action="start",
                grace_seconds=config.startup_grace_seconds,
                timeout=context.timeout,
            )
        ]
    )
    if results[-1].level.is_failure:
        sink.log(results[-1].level, "Scanner daemon unavailable. Aborting scan.")
    else:
        targets = discover_scan_targets(
            config.drives,
            tuple(str(path) for path in config.exclude_paths),
            tuple(str(path) for path in config.fallback_targets),
            timeout=context.timeout,
        )
        sink.section("Malware Sweep")
        sink.info(f"Scanning filesystems: {' '.join(targets)}")
        results.extend(runner.run([MalwareScanCheck(targets, timeout=config.scan_timeout_seconds)]))
    return finish(STAGE, "Malware scan", context, results, ExitPolicy.PROPAGATE)
