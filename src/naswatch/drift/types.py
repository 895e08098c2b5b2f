"""Drift domain types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from naswatch.checks.types import Level

DEFAULT_TREE_EXCLUDES: tuple[str, ...] = ("*passphrase*",)


class DriftCategory(Enum):
    """Kind of managed artifact a catalog entry tracks."""

    EXECUTABLE = "executable"
    SERVICE_UNIT = "service_unit"
    TIMER_UNIT = "timer_unit"
    SETTINGS = "settings"


class DriftOutcome(Enum):
    MATCH = "match"
    DRIFT = "drift"
    MISSING_SOURCE = "missing_source"
    MISSING_REFERENCE = "missing_reference"


# The live artifact is mandatory; a staged baseline may not exist yet.
OUTCOME_LEVELS: dict[DriftOutcome, Level] = {
    DriftOutcome.MATCH: Level.INFO,
    DriftOutcome.DRIFT: Level.WARNING,
    DriftOutcome.MISSING_SOURCE: Level.ERROR,
    DriftOutcome.MISSING_REFERENCE: Level.WARNING,
}


def outcome_level(outcome: DriftOutcome) -> Level:
    return OUTCOME_LEVELS[outcome]


@dataclass(frozen=True)
class DriftPair:
    """One managed file: where it runs, and where its staged copy lives."""

    label: str
    category: DriftCategory
    source_path: Path
    reference_path: Path

    def __post_init__(self) -> None:
        if not self.label:
            raise ValueError("drift pair label must be provided")
        if str(self.source_path) in ("", ".") or str(self.reference_path) in ("", "."):
            raise ValueError(f"drift pair {self.label!r} must name both paths")
