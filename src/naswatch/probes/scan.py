"""On-demand malware scan through the clamd daemon."""

from __future__ import annotations

import logging
import re

from naswatch.checks.types import Check, CheckResult, Level
from naswatch.probes.exec import DEFAULT_TIMEOUT_SECONDS, ExecTimeout, run_command

logger = logging.getLogger(__name__)

_INFECTED = re.compile(r"Infected files:\s*(\d+)")

MAX_DETAIL_LINES = 50


def discover_scan_targets(
    drives: tuple[str, ...],
    exclude_prefixes: tuple[str, ...],
    fallbacks: tuple[str, ...],
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> tuple[str, ...]:
    """Mountpoints of filesystems on the given physical drives.

    Mountpoints starting with any excluded prefix are skipped, as are drives
    whose listing fails or times out. When no drive yields a target,
    ``fallbacks`` is returned.
    """
    targets: list[str] = []
    for drive in drives:
        try:
            listing = run_command(["lsblk", "-no", "MOUNTPOINT", f"/dev/{drive}"], timeout=timeout)
        except ExecTimeout:
            logger.warning("lsblk timed out for /dev/%s; skipping drive", drive)
            continue
        if not listing.ok:
            continue
        for line in listing.stdout.splitlines():
            mountpoint = line.strip()
            if not mountpoint or mountpoint.startswith("["):
                continue
            if any(mountpoint.startswith(prefix) for prefix in exclude_prefixes):
                continue
            if mountpoint not in targets:
                targets.append(mountpoint)
    if not targets:
        return tuple(fallbacks)
    return tuple(targets)


def infected_count(output: str) -> int | None:
    match = _INFECTED.search(output)
    return int(match.group(1)) if match else None


class MalwareScanCheck(Check):
    """Scan targets with clamdscan and classify by exit status.

    clamdscan exits 0 when clean, 1 when something was found and 2 on
    error. Exit 1 with a zero infected count means it skipped files it
    could not read.
    """

    def __init__(self, targets: tuple[str, ...], *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.targets = tuple(targets)
        self.timeout = timeout
        self.name = "Malware scan"

    def run(self) -> CheckResult:
        if not self.targets:
            return CheckResult(name=self.name, level=Level.WARNING, message="No scan targets found.", code="NO_TARGETS")

        scan = run_command(
            ["clamdscan", "--fdpass", "--multiscan", *self.targets],
            timeout=self.timeout,
        )
        lines = [
            line
            for line in (scan.stdout + "\n" + scan.stderr).splitlines()
            if line.strip() and not line.rstrip().endswith(": OK")
        ]
        detail = tuple(lines[-MAX_DETAIL_LINES:])
        infected = infected_count(scan.stdout)
        scope = ", ".join(self.targets)

        if scan.returncode == 0:
            return CheckResult(
                name=self.name,
                level=Level.SUCCESS,
                message=f"Scan clean: {scope}.",
                code="CLEAN",
            )
        if scan.returncode == 1 and infected == 0:
            return CheckResult(
                name=self.name,
                level=Level.WARNING,
                message="Scan completed with unreadable files; no infections found.",
                detail=detail,
                code="PARTIAL",
            )
        if scan.returncode == 1:
            found = "unknown number of" if infected is None else str(infected)
            return CheckResult(
                name=self.name,
                level=Level.CRITICAL,
                message=f"Malware detected: {found} infected file(s). Review quarantine.",
                detail=detail,
                code="INFECTED",
            )
        return CheckResult(
            name=self.name,
            level=Level.ERROR,
            message=f"clamdscan failed (exit {scan.returncode}).",
            detail=detail,
            code="SCAN_FAILED",
        )

