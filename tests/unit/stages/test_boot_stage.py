"""Tests for the boot verification stage."""

from __future__ import annotations

from pathlib import Path

import pytest

from naswatch.checks import Level
from naswatch.config import config_from_dict
from naswatch.probes.exec import ExecResult
from naswatch.stages import StageContext
from naswatch.stages.boot import build_sections, run_boot

HARDWARE = "naswatch.probes.hardware"
SMART_SDA = ("smartctl", "-H", "/dev/sda")
FSTAB = "UUID=abcd /mnt/media ext4 defaults 0 2\n"


@pytest.fixture
def boot_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("naswatch.probes.mounts.is_mountpoint", lambda path: True)
    core = tmp_path / "nas_sys_core"
    core.mkdir()
    live = tmp_path / "fstab"
    live.write_text(FSTAB, encoding="utf-8")
    template = tmp_path / "fstab.template"
    template.write_text(FSTAB, encoding="utf-8")
    return config_from_dict(
        {
            "boot": {
                "drives": ["sda"],
                "block_devices": [],
                "mounts_rw": [str(core)],
                "mounts_ro": [str(tmp_path)],
                "pool": None,
                "baseline": {"live": str(live), "template": str(template)},
            }
        }
    ).boot


def _smart(code: int) -> ExecResult:
    return ExecResult(argv=SMART_SDA, returncode=code, stdout="", stderr="" if code == 0 else "open failed\n")


def test_sections_follow_config(boot_config) -> None:
    titles = [title for title, _ in build_sections(boot_config, timeout=5)]
    assert titles == ["Running Sensor Sweep (SMART)", "Verifying Mounts", "Integrity Check (fstab)"]


def test_green_boot_exits_zero(boot_config, sink, stub_commands) -> None:
    stub_commands({SMART_SDA: _smart(0)}, HARDWARE)
    report = run_boot(boot_config, StageContext(sink=sink))

    assert report.exit_code == 0
    assert [r.code for r in report.verdict.results] == ["HEALTHY", "MOUNTED_RW", "MOUNTED_RO", "MATCH"]
    assert report.summary.level is Level.SUCCESS
    assert sink.entries[-1].message == f"{report.summary.name}: {report.summary.message}"


def test_degraded_drive_warning_fails_boot(boot_config, sink, stub_commands) -> None:
    stub_commands({SMART_SDA: _smart(2)}, HARDWARE)
    report = run_boot(boot_config, StageContext(sink=sink))

    assert report.verdict.overall_level is Level.WARNING
    assert report.verdict.failure_count == 1
    assert report.exit_code == 1
    assert report.summary.level is Level.WARNING


def test_missing_template_does_not_fail_boot(boot_config, sink, stub_commands, tmp_path: Path) -> None:
    (tmp_path / "fstab.template").unlink()
    stub_commands({SMART_SDA: _smart(0)}, HARDWARE)
    report = run_boot(boot_config, StageContext(sink=sink))

    assert report.verdict.results[-1].code == "MISSING_REFERENCE"
    assert report.verdict.overall_level is Level.WARNING
    assert report.exit_code == 0


def test_boot_log_has_sections(boot_config, sink, stub_commands) -> None:
    stub_commands({SMART_SDA: _smart(0)}, HARDWARE)
    run_boot(boot_config, StageContext(sink=sink, max_workers=4))
    text = sink.primary_path.read_text(encoding="utf-8")
    assert text.index("--- Running Sensor Sweep (SMART) ---") < text.index("--- Verifying Mounts ---")
    assert "[INFO] Boot sequence initiated" in text
