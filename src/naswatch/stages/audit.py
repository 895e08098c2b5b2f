"""Weekly configuration audit across the live, staged, and golden tiers."""

from __future__ import annotations

from naswatch.checks.aggregate import summarize
from naswatch.config import AuditConfig
from naswatch.drift.audit import LayeredAuditEngine, drift_count
from naswatch.stages.base import StageContext, StageReport

STAGE = "audit"


def run_audit_stage(config: AuditConfig, context: StageContext) -> StageReport:
    sink = context.sink
    sink.info("Starting configuration audit...")
    engine = LayeredAuditEngine(sink, max_workers=context.max_workers, include_diff=config.include_diff)
    verdict = engine.run(
        config.catalog,
        config.working_root,
        config.golden_root,
        golden_mount=config.golden_mount,
        exclude_patterns=config.exclude,
    )
    drifted = drift_count(verdict)
    if drifted:
        sink.info(f"{drifted} of {len(config.catalog)} managed artifacts need reconciliation.")
    summary = summarize(verdict, "Configuration audit")
    sink.record(summary)
    return StageReport(stage=STAGE, verdict=verdict, summary=summary)
