"""Check model, runner, and verdict aggregation."""

from naswatch.checks.aggregate import aggregate, summarize
from naswatch.checks.runner import CheckRunner
from naswatch.checks.types import (
    AggregateVerdict,
    Check,
    CheckResult,
    ExitPolicy,
    FunctionCheck,
    Level,
)

__all__ = [
    "AggregateVerdict",
    "Check",
    "CheckResult",
    "CheckRunner",
    "ExitPolicy",
    "FunctionCheck",
    "Level",
    "aggregate",
    "summarize",
]
