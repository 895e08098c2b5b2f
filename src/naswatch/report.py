"""Write stage verdicts as JSON and Markdown reports."""

from __future__ import annotations

import json
import platform
import socket
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TextIO

from naswatch import __version__
from naswatch.checks.types import Level
from naswatch.schemas import validate_data
from naswatch.stages.base import StageReport

REPORT_SCHEMA_VERSION = "1.0"
TIMESTAMP_MODES = ("deterministic", "wallclock")

LEVEL_MARKERS = {
    Level.SUCCESS: "[ok]",
    Level.INFO: "[info]",
    Level.WARNING: "[warn]",
    Level.ERROR: "[error]",
    Level.CRITICAL: "[critical]",
}


def _get_deterministic_timestamp() -> str:
    """Get deterministic timestamp for testing."""
    return "1970-01-01T00:00:00Z"


def _get_wallclock_timestamp() -> str:
    """Get current wallclock timestamp."""
    return datetime.now(UTC).isoformat()


def report_paths(stage: str, out_dir: Path) -> tuple[Path, Path]:
    stem = f"{stage.upper()}_VERDICT"
    return out_dir / f"{stem}.json", out_dir / f"{stem}.md"


def build_payload(report: StageReport, timestamp_mode: str = "deterministic") -> dict[str, Any]:
    if timestamp_mode not in TIMESTAMP_MODES:
        raise ValueError(f"timestamp_mode must be one of {', '.join(TIMESTAMP_MODES)}, got {timestamp_mode!r}")
    deterministic = timestamp_mode == "deterministic"
    payload = report.to_dict()
    if deterministic:
        # Per-result timestamps would make reports differ between identical runs.
        for result in [payload["summary"], *payload["verdict"]["results"]]:
            result["timestamp"] = _get_deterministic_timestamp()
    return {
        "schema_version": REPORT_SCHEMA_VERSION,
        "stage": report.stage,
        "generated_at": _get_deterministic_timestamp() if deterministic else _get_wallclock_timestamp(),
        "timestamp_mode": timestamp_mode,
        "host": {
            "hostname": socket.gethostname(),
            "platform": platform.platform(),
            "naswatch_version": __version__,
        },
        "summary": payload["summary"],
        "verdict": payload["verdict"],
    }


def write_verdict_report(
    report: StageReport,
    out_dir: Path,
    timestamp_mode: str = "deterministic",
) -> tuple[Path, Path]:
    """Write ``<STAGE>_VERDICT.json`` and ``<STAGE>_VERDICT.md`` into out_dir.

    Raises:
        RuntimeError: If the JSON payload fails schema validation
    """
    payload = build_payload(report, timestamp_mode)
    errors = validate_data(payload, "verdict")
    if errors:
        raise RuntimeError("verdict report failed schema validation:\n" + "\n".join(errors))

    out_dir.mkdir(parents=True, exist_ok=True)
    json_path, md_path = report_paths(report.stage, out_dir)
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)
        f.write("\n")
    with open(md_path, "w", encoding="utf-8") as f:
        _write_markdown_report(f, report, payload)
    return json_path, md_path


def _write_markdown_report(f: TextIO, report: StageReport, payload: dict[str, Any]) -> None:
    """Write human-readable markdown report."""
    verdict = report.verdict
    f.write(f"# naswatch {report.stage} verdict\n\n")
    f.write(f"**Overall**: {LEVEL_MARKERS[verdict.overall_level]} {verdict.overall_level.name}\n\n")
    f.write(f"**Generated**: {payload['generated_at']} ({payload['timestamp_mode']})\n\n")
    f.write(f"**Host**: {payload['host']['hostname']}\n\n")

    f.write("## Summary\n\n")
    f.write(f"{report.summary.message}\n\n")
    f.write(f"- Exit policy: {verdict.exit_policy.value}\n")
    f.write(f"- Exit code: {verdict.exit_code}\n")
    f.write(f"- Failures: {verdict.failure_count}\n")
    for level_name, count in verdict.counts.items():
        if count:
            f.write(f"- {level_name}: {count}\n")
    f.write("\n")

    f.write("## Results\n\n")
    for result in verdict.results:
        f.write(f"### {LEVEL_MARKERS[result.level]} {result.name}\n\n")
        f.write(f"{result.message}\n\n")
        if result.code:
            f.write(f"Code: `{result.code}`\n\n")
        if result.detail:
            f.write("```\n")
            for line in result.detail:
                f.write(f"{line}\n")
            f.write("```\n\n")
