"""Configuration drift detection across live, staged, and golden tiers."""

from naswatch.drift.audit import LayeredAuditEngine, drift_count, run_audit
from naswatch.drift.catalog import CatalogError, build_catalog
from naswatch.drift.compare import compare_files, compare_trees, diff_lines
from naswatch.drift.types import DriftCategory, DriftOutcome, DriftPair, outcome_level

__all__ = [
    "CatalogError",
    "DriftCategory",
    "DriftOutcome",
    "DriftPair",
    "LayeredAuditEngine",
    "build_catalog",
    "compare_files",
    "compare_trees",
    "diff_lines",
    "drift_count",
    "outcome_level",
    "run_audit",
]
