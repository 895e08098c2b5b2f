"""Multi-device storage pool integrity."""

from __future__ import annotations

from pathlib import Path

from naswatch.checks.types import Check, CheckResult, Level
from naswatch.probes.exec import DEFAULT_TIMEOUT_SECONDS, run_command

PROC_MOUNTS = Path("/proc/mounts")


def _unescape_mount_field(value: str) -> str:
    # /proc/mounts octal-escapes space, tab, newline and backslash
    for escaped, plain in (("\\040", " "), ("\\011", "\t"), ("\\012", "\n"), ("\\134", "\\")):
        value = value.replace(escaped, plain)
    return value


def mounted_fs_type(mountpoint: Path, mounts_file: Path = PROC_MOUNTS) -> str | None:
    """Filesystem type mounted at ``mountpoint``, or None when not mounted."""
    try:
        text = mounts_file.read_text(encoding="utf-8")
    except OSError:
        return None
    fs_type = None
    target = str(mountpoint).rstrip("/") or "/"
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 3:
            continue
        if _unescape_mount_field(fields[1]) == target:
            # last matching entry wins, as with stacked mounts
            fs_type = fields[2]
    return fs_type


def nonzero_error_counters(stats_output: str) -> list[str]:
    """Lines of ``btrfs device stats`` whose counter is not zero."""
    flagged = []
    for line in stats_output.splitlines():
        fields = line.split()
        if len(fields) >= 2 and fields[-1] != "0":
            flagged.append(line.strip())
    return flagged


def count_devices(show_output: str) -> int:
    return sum(1 for line in show_output.splitlines() if "devid" in line)


class PoolIntegrityCheck(Check):
    """Filesystem identity, per-device error counters, and device cardinality.

    A filesystem type mismatch is CRITICAL and ends the check: the remaining
    pool queries mean nothing once the filesystem itself is wrong.
    """

    def __init__(
        self,
        mountpoint: Path,
        *,
        fs_type: str = "btrfs",
        expected_devices: int = 2,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        mounts_file: Path = PROC_MOUNTS,
    ) -> None:
        self.mountpoint = mountpoint
        self.fs_type = fs_type
        self.expected_devices = expected_devices
        self.timeout = timeout
        self.mounts_file = mounts_file
        self.name = f"Pool {mountpoint}"

    def run(self) -> CheckResult:
        actual_type = mounted_fs_type(self.mountpoint, self.mounts_file)
        if actual_type != self.fs_type:
            found = actual_type or "not mounted"
            return CheckResult(
                name=self.name,
                level=Level.CRITICAL,
                message=f"{self.mountpoint} is not mounted as {self.fs_type} ({found}); skipping deep scan.",
                code="FS_MISMATCH",
            )

        level = Level.INFO
        notes: list[str] = []
        detail: list[str] = []

        stats = run_command(["btrfs", "device", "stats", str(self.mountpoint)], timeout=self.timeout)
        if not stats.ok:
            level = max(level, Level.ERROR)
            notes.append("device stats unavailable")
            detail.extend(stats.output_lines)
        else:
            flagged = nonzero_error_counters(stats.stdout)
            if flagged:
                level = max(level, Level.WARNING)
                notes.append(f"{len(flagged)} non-zero I/O error counter(s)")
                detail.extend(flagged)
            else:
                notes.append("device stats clean")

        show = run_command(["btrfs", "filesystem", "show", str(self.mountpoint)], timeout=self.timeout)
        if not show.ok:
            level = max(level, Level.ERROR)
            notes.append("device list unavailable")
            detail.extend(show.output_lines)
        else:
            found = count_devices(show.stdout)
            if found != self.expected_devices:
                level = max(level, Level.CRITICAL)
                notes.append(f"expected {self.expected_devices} devices in pool, found {found}")
            else:
                notes.append(f"{found} devices online")

        codes = {
            Level.INFO: "POOL_OK",
            Level.WARNING: "POOL_IO_ERRORS",
            Level.ERROR: "POOL_QUERY_FAILED",
            Level.CRITICAL: "POOL_DEGRADED",
        }
        return CheckResult(
            name=self.name,
            level=level,
            message=f"{self.fs_type} pool {self.mountpoint}: " + "; ".join(notes) + ".",
            detail=tuple(detail),
            code=codes[level],
        )
