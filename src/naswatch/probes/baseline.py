"""Live system file against a known-good template."""

from __future__ import annotations

from pathlib import Path

from naswatch.checks.types import Check, CheckResult, Level
from naswatch.drift.compare import compare_files, diff_lines
from naswatch.drift.types import DriftOutcome


class BaselineConfigCheck(Check):
    """Compare a live config file with its certified template.

    Drift and a missing template are advisory warnings: they are logged in
    full but never fail a boot run on their own.
    """

    def __init__(self, live: Path, template: Path, *, name: str | None = None) -> None:
        self.live = live
        self.template = template
        self.name = name or f"Baseline {live}"

    def run(self) -> CheckResult:
        if not self.template.is_file():
            return CheckResult(
                name=self.name,
                level=Level.WARNING,
                message=f"Reference template missing at {self.template}. Skipping check.",
                code=DriftOutcome.MISSING_REFERENCE.name,
                advisory=True,
            )
        outcome = compare_files(self.live, self.template)
        if outcome is DriftOutcome.MISSING_SOURCE:
            return CheckResult(
                name=self.name,
                level=Level.ERROR,
                message=f"Live file {self.live} is missing.",
                code=outcome.name,
            )
        if outcome is DriftOutcome.DRIFT:
            return CheckResult(
                name=self.name,
                level=Level.WARNING,
                message=f"Drift detected in {self.live}!",
                detail=tuple(f"diff: {line}" for line in diff_lines(self.live, self.template)),
                code=outcome.name,
                advisory=True,
            )
        return CheckResult(
            name=self.name,
            level=Level.INFO,
            message=f"{self.live} matches verified template.",
            code=outcome.name,
        )
