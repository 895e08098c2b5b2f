"""Backup repository access and snapshot freshness."""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date
from pathlib import Path

from naswatch.checks.types import Check, CheckResult, Level
from naswatch.probes.exec import DEFAULT_TIMEOUT_SECONDS, run_command
from naswatch.probes.mounts import is_mountpoint

_ISO_DATE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")

MAX_DETAIL_LINES = 20


def read_passphrase(path: Path) -> str:
    return path.read_text(encoding="utf-8").rstrip("\r\n")


def archive_date(text: str) -> date | None:
    """First ISO date embedded in an archive name or ``borg info`` line."""
    match = _ISO_DATE.search(text)
    if match is None:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


class BorgAccessCheck(Check):
    """Backup medium mounted, repository present, and metadata readable.

    Every precondition failure is CRITICAL and stops the check at that
    point. The passphrase is passed to the borg child process only.
    """

    def __init__(
        self,
        mount: Path,
        repository: Path,
        passphrase_file: Path,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.mount = mount
        self.repository = repository
        self.passphrase_file = passphrase_file
        self.timeout = timeout
        self.name = "Backup repository"

    def run(self) -> CheckResult:
        if not is_mountpoint(self.mount):
            return self._fail(Level.CRITICAL, f"Backup drive {self.mount} not mounted!", "NOT_MOUNTED")
        if not self.repository.is_dir():
            return self._fail(Level.CRITICAL, f"Borg repository not found at {self.repository}!", "REPO_MISSING")
        if not self.passphrase_file.is_file():
            return self._fail(
                Level.CRITICAL,
                f"Passphrase file missing at {self.passphrase_file}. Cannot authenticate.",
                "PASSPHRASE_MISSING",
            )

        info = run_command(
            ["borg", "info", str(self.repository)],
            timeout=self.timeout,
            env={"BORG_PASSPHRASE": read_passphrase(self.passphrase_file)},
        )
        if not info.ok:
            return CheckResult(
                name=self.name,
                level=Level.ERROR,
                message=f"borg returned an error (exit {info.returncode}).",
                detail=tuple(info.output_lines[-MAX_DETAIL_LINES:]),
                code="REPO_UNREADABLE",
            )
        return CheckResult(
            name=self.name,
            level=Level.SUCCESS,
            message="Repository is accessible and structurally valid.",
            code="REPO_OK",
        )

    def _fail(self, level: Level, message: str, code: str) -> CheckResult:
        return CheckResult(name=self.name, level=level, message=message, code=code)


class BorgFreshnessCheck(Check):
    """Newest archive must be dated within ``freshness_days`` of today.

    A stale snapshot is only a WARNING; a day's slack is normal for a home
    backup cadence and the window is configurable.
    """

    def __init__(
        self,
        repository: Path,
        passphrase_file: Path,
        *,
        freshness_days: int = 1,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.repository = repository
        self.passphrase_file = passphrase_file
        self.freshness_days = freshness_days
        self.timeout = timeout
        self.today = today
        self.name = "Backup freshness"

    def run(self) -> CheckResult:
        env = {"BORG_PASSPHRASE": read_passphrase(self.passphrase_file)}
        listing = run_command(["borg", "list", "--short", str(self.repository)], timeout=self.timeout, env=env)
        if not listing.ok:
            return CheckResult(
                name=self.name,
                level=Level.ERROR,
                message=f"Could not list archives (exit {listing.returncode}).",
                detail=tuple(listing.output_lines[-MAX_DETAIL_LINES:]),
                code="LIST_FAILED",
            )

        archives = [line.strip() for line in listing.stdout.splitlines() if line.strip()]
        if not archives:
            return CheckResult(
                name=self.name,
                level=Level.WARNING,
                message="No archives found in borg repository!",
                code="NO_ARCHIVES",
            )

        latest = archives[-1]
        taken = archive_date(latest)
        if taken is None:
            info = run_command(
                ["borg", "info", f"{self.repository}::{latest}"], timeout=self.timeout, env=env
            )
            for line in info.stdout.splitlines():
                if line.strip().startswith("Time (start)"):
                    taken = archive_date(line)
                    break
        if taken is None:
            return CheckResult(
                name=self.name,
                level=Level.WARNING,
                message=f"Latest snapshot {latest} has no recognizable date.",
                code="UNDATED",
            )

        age = (self.today() - taken).days
        if 0 <= age <= self.freshness_days:
            return CheckResult(
                name=self.name,
                level=Level.SUCCESS,
                message=f"Backup is fresh: {latest} ({taken.isoformat()}, {age} day(s) old).",
                code="FRESH",
            )
        return CheckResult(
            name=self.name,
            level=Level.WARNING,
            message=f"Backup may be stale! Last snapshot: {latest} ({taken.isoformat()}).",
            code="STALE",
        )
