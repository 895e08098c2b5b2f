"""Append-only, multi-destination run log.

Every subsystem writes three streams:

- ``<log_dir>/<subsystem>.log``: the subsystem's own log
- ``<log_dir>/<core_log>``: the shared timeline for all subsystems
- ``<mirror_dir>/<subsystem>.log``: a mirror on the backup medium, written
  only while that directory is present and writable

Lines are ``[<timestamp>] [<LEVEL>] <message>``. Each line is written and
flushed while holding a per-path lock that every sink in the process
shares, so concurrent writers never interleave partial lines.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import IO, TYPE_CHECKING

from rich.console import Console
from rich.text import Text

from naswatch.checks.types import CheckResult, Level

if TYPE_CHECKING:
    from types import TracebackType

    from naswatch.config import LoggingConfig

logger = logging.getLogger(__name__)

DEFAULT_TIMESTAMP_FORMAT = "%d/%m/%y %H:%M:%S"

LEVEL_STYLES: dict[Level, str] = {
    Level.SUCCESS: "bold green",
    Level.INFO: "cyan",
    Level.WARNING: "bold yellow",
    Level.ERROR: "bold red",
    Level.CRITICAL: "bold white on red",
}

_LOCKS_GUARD = threading.Lock()
_DESTINATION_LOCKS: dict[Path, threading.Lock] = {}


def _lock_for(path: Path) -> threading.Lock:
    key = path.resolve()
    with _LOCKS_GUARD:
        lock = _DESTINATION_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _DESTINATION_LOCKS[key] = lock
        return lock


@dataclass(frozen=True)
class LogEntry:
    """One rendered log line."""

    timestamp: datetime
    level: Level
    message: str

    def render(self, timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT) -> str:
        return f"[{self.timestamp.strftime(timestamp_format)}] [{self.level.name}] {self.message}"


class _Destination:
    def __init__(self, path: Path, handle: IO[str]) -> None:
        self.path = path
        self.handle = handle
        self.lock = _lock_for(path)

    def write_line(self, line: str) -> None:
        with self.lock:
            self.handle.write(line + "\n")
            self.handle.flush()

    def close(self) -> None:
        with self.lock:
            self.handle.close()


def mirror_available(mirror_dir: Path | None, mirror_mount: Path | None = None) -> bool:
    """Return True when the mirror directory can take writes right now."""
    if mirror_dir is None:
        return False
    if not mirror_dir.is_dir() or not os.access(mirror_dir, os.W_OK):
        return False
    if mirror_mount is not None and not os.path.ismount(mirror_mount):
        return False
    return True


class LogSink:
    """Structured run log for one subsystem.

    Open it at run start (``with LogSink(...) as sink``) and let the context
    manager close it. Absence of the mirror is never an error; it is
    re-evaluated for every line so a medium that detaches mid-run simply
    stops receiving lines.
    """

    def __init__(
        self,
        subsystem: str,
        log_dir: Path,
        *,
        core_log: str = "full_core.log",
        mirror_dir: Path | None = None,
        mirror_mount: Path | None = None,
        timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
        echo: bool = True,
        truncate: bool = False,
        console: Console | None = None,
    ) -> None:
        if not subsystem:
            raise ValueError("subsystem must be provided")
        self.subsystem = subsystem
        self.log_dir = log_dir
        self.core_log = core_log
        self.mirror_dir = mirror_dir
        self.mirror_mount = mirror_mount
        self.timestamp_format = timestamp_format
        self.echo = echo
        self.truncate = truncate
        self.console = console or Console(highlight=False)
        self.entries: list[LogEntry] = []
        self._primary: list[_Destination] = []
        self._mirror: _Destination | None = None
        self._opened = False

    @classmethod
    def from_config(cls, subsystem: str, config: LoggingConfig, **overrides: object) -> LogSink:
        options: dict[str, object] = {
            "core_log": config.core_log,
            "mirror_dir": config.mirror_dir,
            "mirror_mount": config.mirror_mount,
            "timestamp_format": config.timestamp_format,
            "echo": config.echo,
        }
        options.update(overrides)
        return cls(subsystem, config.log_dir, **options)  # type: ignore[arg-type]

    @property
    def primary_path(self) -> Path:
        return self.log_dir / f"{self.subsystem}.log"

    @property
    def core_path(self) -> Path:
        return self.log_dir / self.core_log

    @property
    def mirror_path(self) -> Path | None:
        if self.mirror_dir is None:
            return None
        return self.mirror_dir / f"{self.subsystem}.log"

    def open(self) -> LogSink:
        if self._opened:
            return self
        self.log_dir.mkdir(parents=True, exist_ok=True)
        primary_mode = "w" if self.truncate else "a"
        self._primary = [
            _Destination(self.primary_path, open(self.primary_path, primary_mode, encoding="utf-8")),
        ]
        if self.core_path != self.primary_path:
            self._primary.append(
                _Destination(self.core_path, open(self.core_path, "a", encoding="utf-8"))
            )
        self._opened = True
        return self

    def close(self) -> None:
        for destination in self._primary:
            destination.close()
        if self._mirror is not None:
            self._mirror.close()
        self._primary = []
        self._mirror = None
        self._opened = False

    def __enter__(self) -> LogSink:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def log(self, level: Level, message: str) -> LogEntry:
        if not self._opened:
            raise RuntimeError(f"log sink for {self.subsystem!r} is not open")
        entry = LogEntry(timestamp=datetime.now(), level=level, message=message)
        line = entry.render(self.timestamp_format)

        if self.echo:
            self.console.print(Text(line, style=LEVEL_STYLES[level]))

        for destination in self._primary:
            destination.write_line(line)

        mirror = self._mirror_destination()
        if mirror is not None:
            try:
                mirror.write_line(line)
            except OSError as exc:
                logger.debug("mirror write to %s failed: %s", mirror.path, exc)
                self._drop_mirror()

        self.entries.append(entry)
        return entry

    def info(self, message: str) -> LogEntry:
        return self.log(Level.INFO, message)

    def section(self, title: str) -> LogEntry:
        return self.log(Level.INFO, f"--- {title} ---")

    def record(self, result: CheckResult) -> None:
        """Log a check result followed by its detail lines at the same level."""
        self.log(result.level, f"{result.name}: {result.message}")
        for line in result.detail:
            self.log(result.level, f"   -> {line}")

    def _mirror_destination(self) -> _Destination | None:
        if not mirror_available(self.mirror_dir, self.mirror_mount):
            if self._mirror is not None:
                self._drop_mirror()
            return None
        if self._mirror is None:
            path = self.mirror_path
            if path is None:
                return None
            try:
                self._mirror = _Destination(path, open(path, "a", encoding="utf-8"))
            except OSError as exc:
                logger.debug("mirror %s unavailable: %s", path, exc)
                return None
        return self._mirror

    def _drop_mirror(self) -> None:
        if self._mirror is None:
            return
        try:
            self._mirror.close()
        except OSError:
            logger.debug("closing mirror %s failed", self._mirror.path, exc_info=True)
        self._mirror = None
