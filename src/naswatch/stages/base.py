"""Shared plumbing for stage runs."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass

from naswatch.checks.aggregate import aggregate, summarize
from naswatch.checks.runner import CheckRunner
from naswatch.checks.types import AggregateVerdict, Check, CheckResult, ExitPolicy
from naswatch.logsink import LogSink
from naswatch.probes.exec import DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True)
class StageReport:
    """Verdict of one stage run plus the summary line that closed its log."""

    stage: str
    verdict: AggregateVerdict
    summary: CheckResult

    @property
    def exit_code(self) -> int:
        return self.verdict.exit_code

    def to_dict(self) -> dict[str, object]:
        return {
            "stage": self.stage,
            "summary": self.summary.to_dict(),
            "verdict": self.verdict.to_dict(),
        }


@dataclass
class StageContext:
    """What every stage needs besides its own configuration section."""

    sink: LogSink
    max_workers: int = 1
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    cancel_event: threading.Event | None = None

    def runner(self) -> CheckRunner:
        return CheckRunner(self.sink, max_workers=self.max_workers, cancel_event=self.cancel_event)


def run_sections(context: StageContext, sections: Sequence[tuple[str, Sequence[Check]]]) -> list[CheckResult]:
    """Run each titled group of checks in order, logging a header per group."""
    runner = context.runner()
    results: list[CheckResult] = []
    for title, checks in sections:
        if not checks:
            continue
        context.sink.section(title)
        results.extend(runner.run(checks))
    return results


def finish(
    stage: str,
    subject: str,
    context: StageContext,
    results: Sequence[CheckResult],
    exit_policy: ExitPolicy,
    *,
    treat_warning_as_failure: bool = False,
) -> StageReport:
    """Aggregate results and log the summary as the final line of the run."""
    verdict = aggregate(results, exit_policy, treat_warning_as_failure=treat_warning_as_failure)
    summary = summarize(verdict, subject)
    context.sink.record(summary)
    return StageReport(stage=stage, verdict=verdict, summary=summary)
