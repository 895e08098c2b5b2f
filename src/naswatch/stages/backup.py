"""Backup repository integrity and freshness."""

from __future__ import annotations

from naswatch.checks.types import ExitPolicy
from naswatch.config import BackupConfig
from naswatch.probes.backup import BorgAccessCheck, BorgFreshnessCheck
from naswatch.stages.base import StageContext, StageReport, finish

STAGE = "backup"


def run_backup(config: BackupConfig, context: StageContext) -> StageReport:
    sink = context.sink
    sink.info("Starting backup integrity check...")
    runner = context.runner()

    sink.section("Repository Access")
    results = runner.run(
        [BorgAccessCheck(config.mount, config.repository, config.passphrase_file, timeout=context.timeout)]
    )
    # Freshness is meaningless without a readable repository.
    if not results[-1].level.is_failure:
        sink.section("Snapshot Freshness")
        results.extend(
            runner.run(
                [
                    BorgFreshnessCheck(
                        config.repository,
                        config.passphrase_file,
                        freshness_days=config.freshness_days,
                        timeout=context.timeout,
                    )
                ]
            )
        )
    return finish(STAGE, "Backup integrity", context, results, ExitPolicy.PROPAGATE)
