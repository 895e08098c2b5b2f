"""Check domain types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, IntEnum


class Level(IntEnum):
    """Severity ladder. Aggregation relies on this ordering."""

    SUCCESS = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4

    @property
    def is_failure(self) -> bool:
        return self >= Level.ERROR


class ExitPolicy(Enum):
    """How a verdict maps onto the process exit code."""

    PROPAGATE = "propagate"
    SUPPRESS = "suppress"


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a single probe or comparison."""

    name: str
    level: Level
    message: str
    detail: tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=_now)
    code: str | None = None
    # Advisory warnings never count toward a failure tally.
    advisory: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("check result name must be provided")
        if not isinstance(self.level, Level):
            raise TypeError(f"level must be a Level, got {type(self.level).__name__}")
        object.__setattr__(self, "detail", tuple(self.detail))

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "level": self.level.name,
            "message": self.message,
            "detail": list(self.detail),
            "timestamp": self.timestamp.isoformat(),
            "code": self.code,
            "advisory": self.advisory,
        }


@dataclass(frozen=True)
class AggregateVerdict:
    """Folded view over an ordered batch of check results."""

    results: tuple[CheckResult, ...]
    failure_count: int
    overall_level: Level
    exit_policy: ExitPolicy
    treat_warning_as_failure: bool = False

    @property
    def exit_code(self) -> int:
        if self.exit_policy is ExitPolicy.SUPPRESS:
            return 0
        return 0 if self.failure_count == 0 else 1

    @property
    def counts(self) -> dict[str, int]:
        tally = {level.name: 0 for level in Level}
        for result in self.results:
            tally[result.level.name] += 1
        return tally

    def to_dict(self) -> dict[str, object]:
        return {
            "overall_level": self.overall_level.name,
            "failure_count": self.failure_count,
            "exit_policy": self.exit_policy.value,
            "treat_warning_as_failure": self.treat_warning_as_failure,
            "exit_code": self.exit_code,
            "counts": self.counts,
            "results": [result.to_dict() for result in self.results],
        }


class Check(ABC):
    """A named probe that produces exactly one CheckResult."""

    name: str = ""
    # Checks that change external state (daemon restarts, firewall enable)
    # are never run alongside other checks.
    mutates_shared_state: bool = False

    @abstractmethod
    def run(self) -> CheckResult:
        """Run the probe and normalize its outcome."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class FunctionCheck(Check):
    """Adapter turning a zero-argument callable into a Check."""

    def __init__(
        self,
        name: str,
        fn: Callable[[], CheckResult],
        *,
        mutates_shared_state: bool = False,
    ) -> None:
        self.name = name
        self.fn = fn
        self.mutates_shared_state = mutates_shared_state

    def run(self) -> CheckResult:
        return self.fn()
