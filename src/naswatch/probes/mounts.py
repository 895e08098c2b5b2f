"""Mount presence and write probes."""

from __future__ import annotations

import os
from pathlib import Path

from naswatch.checks.types import Check, CheckResult, Level

DEFAULT_PROBE_MARKER = ".nas_probe"


def is_mountpoint(path: Path) -> bool:
    return os.path.ismount(path)


class MountCheck(Check):
    """Verify a mountpoint is attached, and writable when expected to be.

    The write probe creates a marker file and removes it again; the marker
    never outlives the check.
    """

    def __init__(
        self,
        mountpoint: Path,
        *,
        writable: bool,
        marker_name: str = DEFAULT_PROBE_MARKER,
    ) -> None:
        self.mountpoint = mountpoint
        self.writable = writable
        self.marker_name = marker_name
        self.name = f"Mount {mountpoint}"

    @property
    def marker_path(self) -> Path:
        return self.mountpoint / self.marker_name

    def run(self) -> CheckResult:
        if not is_mountpoint(self.mountpoint):
            return self._result(Level.ERROR, f"{self.mountpoint} is NOT mounted.", "NOT_MOUNTED")

        if not self.writable:
            return self._result(Level.INFO, f"{self.mountpoint} mounted (read-only expected).", "MOUNTED_RO")

        marker = self.marker_path
        try:
            marker.touch()
        except OSError as exc:
            return self._result(
                Level.ERROR,
                f"{self.mountpoint} mounted but READ-ONLY or permission denied ({exc.strerror or exc}).",
                "NOT_WRITABLE",
            )
        try:
            marker.unlink()
        except OSError as exc:
            return self._result(
                Level.ERROR,
                f"{self.mountpoint} accepted the probe marker but it could not be removed ({exc}).",
                "MARKER_STUCK",
            )
        return self._result(Level.INFO, f"{self.mountpoint} mounted and writable.", "MOUNTED_RW")

    def _result(self, level: Level, message: str, code: str) -> CheckResult:
        return CheckResult(name=self.name, level=level, message=message, code=code)
