"""Layered drift audit.

Tier 1 compares each live artifact in the catalog with its staged copy.
Tier 2 sweeps the whole staging tree against the golden backup. The audit
never propagates a failing exit code: drift is reported through the log
and the verdict's overall level.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from naswatch.checks.aggregate import aggregate
from naswatch.checks.runner import CheckRunner
from naswatch.checks.types import AggregateVerdict, Check, CheckResult, ExitPolicy, Level
from naswatch.drift.compare import compare_files, compare_trees, diff_lines
from naswatch.drift.types import (
    DEFAULT_TREE_EXCLUDES,
    DriftOutcome,
    DriftPair,
    outcome_level,
)

if TYPE_CHECKING:
    from naswatch.logsink import LogSink

TIER1_LABEL = "Live->Work"
TIER2_LABEL = "Work->Golden"
TIER2_SKIPPED = "TIER2_SKIPPED"

DRIFT_CODES = frozenset(
    {
        DriftOutcome.DRIFT.name,
        DriftOutcome.MISSING_SOURCE.name,
        DriftOutcome.MISSING_REFERENCE.name,
    }
)


class DriftPairCheck(Check):
    """Tier 1 comparison of one catalog entry."""

    def __init__(self, pair: DriftPair, *, include_diff: bool = False) -> None:
        self.pair = pair
        self.include_diff = include_diff
        self.name = f"{TIER1_LABEL} {pair.label}"

    def run(self) -> CheckResult:
        pair = self.pair
        outcome = compare_files(pair.source_path, pair.reference_path)
        detail: list[str] = []
        if outcome is DriftOutcome.MATCH:
            message = "match"
        elif outcome is DriftOutcome.DRIFT:
            message = f"DRIFT DETECTED ({pair.category.value})"
            if self.include_diff:
                detail = diff_lines(pair.source_path, pair.reference_path)
        elif outcome is DriftOutcome.MISSING_SOURCE:
            message = f"missing source {pair.source_path}"
        else:
            message = f"missing reference {pair.reference_path}"
        return CheckResult(
            name=self.name,
            level=outcome_level(outcome),
            message=message,
            detail=tuple(detail),
            code=outcome.name,
        )


class TreeSyncCheck(Check):
    """Tier 2 sweep of the staging tree against the golden tree."""

    name = f"{TIER2_LABEL} sync"

    def __init__(
        self,
        working_root: Path,
        golden_root: Path,
        exclude_patterns: Iterable[str] = DEFAULT_TREE_EXCLUDES,
    ) -> None:
        self.working_root = working_root
        self.golden_root = golden_root
        self.exclude_patterns = tuple(exclude_patterns)

    def run(self) -> CheckResult:
        outcome = compare_trees(self.working_root, self.golden_root, self.exclude_patterns)
        messages = {
            DriftOutcome.MATCH: "golden master is synchronized",
            DriftOutcome.DRIFT: "staging area differs from golden master",
            DriftOutcome.MISSING_SOURCE: f"staging root missing at {self.working_root}",
            DriftOutcome.MISSING_REFERENCE: f"golden root missing at {self.golden_root}",
        }
        return CheckResult(
            name=self.name,
            level=outcome_level(outcome),
            message=messages[outcome],
            code=outcome.name,
        )


def golden_reachable(golden_root: Path, golden_mount: Path | None = None) -> bool:
    """The golden tier counts only when its medium is mounted and the tree exists."""
    if golden_mount is not None and not os.path.ismount(golden_mount):
        return False
    return golden_root.is_dir()


def tier2_skipped_result(golden_root: Path) -> CheckResult:
    return CheckResult(
        name=f"{TIER2_LABEL} sync",
        level=Level.WARNING,
        message=f"golden master not accessible at {golden_root}; tier 2 skipped",
        code=TIER2_SKIPPED,
    )


def drift_count(verdict: AggregateVerdict) -> int:
    """Number of results reporting drift or a missing artifact."""
    return sum(1 for r in verdict.results if r.code in DRIFT_CODES)


class LayeredAuditEngine:
    """Run both audit tiers and fold them into one SUPPRESS verdict."""

    def __init__(
        self,
        sink: LogSink | None = None,
        *,
        max_workers: int = 1,
        include_diff: bool = False,
    ) -> None:
        self.sink = sink
        self.max_workers = max_workers
        self.include_diff = include_diff

    def run(
        self,
        catalog: Sequence[DriftPair],
        working_root: Path,
        golden_root: Path,
        *,
        golden_mount: Path | None = None,
        exclude_patterns: Iterable[str] = DEFAULT_TREE_EXCLUDES,
    ) -> AggregateVerdict:
        runner = CheckRunner(self.sink, max_workers=self.max_workers)

        if self.sink is not None:
            self.sink.section("Comparing LIVE system to STAGING configs")
        results = runner.run([DriftPairCheck(pair, include_diff=self.include_diff) for pair in catalog])

        if golden_reachable(golden_root, golden_mount):
            if self.sink is not None:
                self.sink.section("Comparing STAGING configs to GOLDEN master")
            results.extend(runner.run([TreeSyncCheck(working_root, golden_root, exclude_patterns)]))
        else:
            skipped = tier2_skipped_result(golden_root)
            if self.sink is not None:
                self.sink.record(skipped)
            results.append(skipped)

        return aggregate(results, ExitPolicy.SUPPRESS)


def run_audit(
    catalog: Sequence[DriftPair],
    working_root: Path,
    golden_root: Path,
    *,
    golden_mount: Path | None = None,
    exclude_patterns: Iterable[str] = DEFAULT_TREE_EXCLUDES,
    sink: LogSink | None = None,
    include_diff: bool = False,
    max_workers: int = 1,
) -> AggregateVerdict:
    """Convenience wrapper around LayeredAuditEngine."""
    engine = LayeredAuditEngine(sink, max_workers=max_workers, include_diff=include_diff)
    return engine.run(
        catalog,
        working_root,
        golden_root,
        golden_mount=golden_mount,
        exclude_patterns=exclude_patterns,
    )
