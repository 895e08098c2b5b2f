"""Run an ordered batch of checks without letting one fault abort the rest."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from naswatch.checks.types import Check, CheckResult, Level

if TYPE_CHECKING:
    from naswatch.logsink import LogSink

logger = logging.getLogger(__name__)


def _fault_result(check: Check, exc: BaseException) -> CheckResult:
    return CheckResult(
        name=check.name or type(check).__name__,
        level=Level.ERROR,
        message=f"Check raised {type(exc).__name__}: {exc}",
        code="FAULT",
    )


def _cancelled_result(check: Check) -> CheckResult:
    return CheckResult(
        name=check.name or type(check).__name__,
        level=Level.WARNING,
        message="Check not run: run was cancelled.",
        code="CANCELLED",
    )


class CheckRunner:
    """Execute checks and collect exactly one result per check.

    With ``max_workers == 1`` checks run sequentially in declaration order.
    With more workers, read-only checks run on a thread pool first and
    mutating checks run afterwards one at a time. The returned list is
    always in declaration order.
    """

    def __init__(
        self,
        sink: LogSink | None = None,
        *,
        max_workers: int = 1,
        cancel_event: threading.Event | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.sink = sink
        self.max_workers = max_workers
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        self.cancel_event.set()

    def run(self, checks: Sequence[Check]) -> list[CheckResult]:
        if self.max_workers == 1:
            results = []
            for check in checks:
                result = self._execute(check)
                self._record(result)
                results.append(result)
            return results

        slots: dict[int, CheckResult] = {}
        readonly = [(i, c) for i, c in enumerate(checks) if not c.mutates_shared_state]
        mutating = [(i, c) for i, c in enumerate(checks) if c.mutates_shared_state]
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {i: pool.submit(self._execute, c) for i, c in readonly}
            for index, future in futures.items():
                slots[index] = future.result()
        for index, check in mutating:
            slots[index] = self._execute(check)

        results = [slots[index] for index in range(len(checks))]
        for result in results:
            self._record(result)
        return results

    def _record(self, result: CheckResult) -> None:
        if self.sink is not None:
            self.sink.record(result)

    def _execute(self, check: Check) -> CheckResult:
        if self.cancel_event.is_set():
            return _cancelled_result(check)
        try:
            result = check.run()
        except Exception as exc:
            logger.debug("check %r faulted", check, exc_info=True)
            return _fault_result(check, exc)
        if not isinstance(result, CheckResult):
            return _fault_result(check, TypeError(f"expected CheckResult, got {type(result).__name__}"))
        return result
