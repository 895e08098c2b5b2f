"""Fold check results into a verdict."""

from __future__ import annotations

from collections.abc import Iterable

from naswatch.checks.types import AggregateVerdict, CheckResult, ExitPolicy, Level


def _counts_as_failure(result: CheckResult, treat_warning_as_failure: bool) -> bool:
    if result.level.is_failure:
        return True
    if treat_warning_as_failure and result.level is Level.WARNING:
        return not result.advisory
    return False


def aggregate(
    results: Iterable[CheckResult],
    exit_policy: ExitPolicy,
    *,
    treat_warning_as_failure: bool = False,
) -> AggregateVerdict:
    """Fold an ordered batch of results into an AggregateVerdict.

    Args:
        results: Check results in evaluation order
        exit_policy: PROPAGATE for boot-class runs, SUPPRESS for audits
        treat_warning_as_failure: Count non-advisory WARNING results as
            failures (boot-class batches)

    Returns:
        AggregateVerdict preserving the input order
    """
    ordered = tuple(results)
    failure_count = sum(1 for r in ordered if _counts_as_failure(r, treat_warning_as_failure))
    overall = max((r.level for r in ordered), default=Level.SUCCESS)
    return AggregateVerdict(
        results=ordered,
        failure_count=failure_count,
        overall_level=overall,
        exit_policy=exit_policy,
        treat_warning_as_failure=treat_warning_as_failure,
    )


def summarize(verdict: AggregateVerdict, subject: str) -> CheckResult:
    """Build the closing summary line for a run."""
    if verdict.overall_level < Level.WARNING:
        return CheckResult(
            name=f"{subject} summary",
            level=Level.SUCCESS,
            message=f"{subject}: all {len(verdict.results)} checks green.",
            code="SUMMARY",
        )

    flagged = sum(1 for r in verdict.results if r.level >= Level.WARNING)
    message = (
        f"{subject}: {flagged} of {len(verdict.results)} checks flagged, "
        f"{verdict.failure_count} counted as failures "
        f"(worst: {verdict.overall_level.name})."
    )
    if verdict.exit_policy is ExitPolicy.SUPPRESS:
        message += " Review the log and reconcile manually."
    return CheckResult(
        name=f"{subject} summary",
        level=verdict.overall_level,
        message=message,
        code="SUMMARY",
    )
