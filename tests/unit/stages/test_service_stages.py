"""Tests for the backup, firewall, vpn, scan and beacon stages."""

from __future__ import annotations

from pathlib import Path

import pytest

from naswatch.checks import ExitPolicy, Level
from naswatch.config import config_from_dict
from naswatch.probes.exec import ExecResult, ExecTimeout
from naswatch.stages import STAGES, StageContext, get_stage
from naswatch.stages.backup import run_backup
from naswatch.stages.beacons import run_beacons
from naswatch.stages.firewall import run_firewall
from naswatch.stages.scan import run_scan
from naswatch.stages.vpn import run_vpn


def _result(argv: tuple[str, ...], stdout: str = "", code: int = 0) -> ExecResult:
    return ExecResult(argv=argv, returncode=code, stdout=stdout, stderr="")


def _timing_out(stub, program: str):
    def run(argv: list[str], **kwargs):
        if argv[0] == program:
            raise ExecTimeout(ExecResult(argv=tuple(argv), returncode=-1, stdout="", stderr="timed out after 1s"))
        return stub(argv, **kwargs)

    return run


def test_registry_policies() -> None:
    assert list(STAGES) == ["boot", "audit", "backup", "firewall", "vpn", "scan", "beacons"]
    suppressed = {name for name, spec in STAGES.items() if spec.exit_policy is ExitPolicy.SUPPRESS}
    assert suppressed == {"audit", "beacons"}
    assert {name for name, spec in STAGES.items() if spec.truncate_log} == {"firewall", "vpn", "beacons"}
    with pytest.raises(KeyError, match="unknown stage"):
        get_stage("update")


def test_backup_freshness_skipped_when_repository_unreachable(
    tmp_path: Path, sink, stub_commands, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr("naswatch.probes.backup.is_mountpoint", lambda path: False)
    stub = stub_commands({}, "naswatch.probes.backup")
    config = config_from_dict({"backup": {"mount": str(tmp_path)}}).backup

    report = run_backup(config, StageContext(sink=sink))

    assert [r.code for r in report.verdict.results] == ["NOT_MOUNTED"]
    assert report.exit_code == 1
    assert stub.calls == []


def test_backup_stale_snapshot_does_not_fail(tmp_path: Path, sink, stub_commands, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("naswatch.probes.backup.is_mountpoint", lambda path: True)
    repo = tmp_path / "repo"
    repo.mkdir()
    passphrase = tmp_path / "passphrase"
    passphrase.write_text("pw\n", encoding="utf-8")
    info = ("borg", "info", str(repo))
    listing = ("borg", "list", "--short", str(repo))
    stub_commands({info: _result(info), listing: _result(listing, "tower-2001-01-01\n")}, "naswatch.probes.backup")
    config = config_from_dict(
        {"backup": {"mount": str(tmp_path), "repository": str(repo), "passphrase_file": str(passphrase)}}
    ).backup

    report = run_backup(config, StageContext(sink=sink))

    assert [r.code for r in report.verdict.results] == ["REPO_OK", "STALE"]
    assert report.exit_code == 0
    assert report.summary.level is Level.WARNING


def test_firewall_stage(sink, stub_commands) -> None:
    status = ("ufw", "status")
    stub_commands({status: _result(status, "Status: active\n22/tcp ALLOW 192.168.0.0/24\n")}, "naswatch.probes.firewall")
    config = config_from_dict({"firewall": {"required_rules": ["192.168.0.0/24", "10.0.0.0/8"]}}).firewall

    report = run_firewall(config, StageContext(sink=sink))

    assert [r.code for r in report.verdict.results] == ["ACTIVE", "RULE_PRESENT", "RULE_MISSING"]
    assert report.exit_code == 0


def test_vpn_stage_restarts_daemon(sink, stub_commands) -> None:
    is_active = ("systemctl", "is-active", "--quiet", "mullvad-daemon")
    restart = ("systemctl", "restart", "mullvad-daemon")
    link = ("ip", "link", "show", "wg0-mullvad")
    stub = stub_commands(
        {
            is_active: [_result(is_active, code=3), _result(is_active)],
            restart: _result(restart),
            link: _result(link),
        },
        "naswatch.probes.systemd",
        "naswatch.probes.vpn",
    )
    config = config_from_dict({"vpn": {"grace_seconds": 0}}).vpn

    report = run_vpn(config, StageContext(sink=sink))

    assert [r.code for r in report.verdict.results] == ["RESTORED", "TUNNEL_UP"]
    assert stub.argvs()[:2] == [is_active, restart]
    assert report.exit_code == 0


def test_scan_aborts_when_daemon_down(sink, stub_commands) -> None:
    is_active = ("systemctl", "is-active", "--quiet", "clamav-daemon")
    start = ("systemctl", "start", "clamav-daemon")
    stub = stub_commands(
        {is_active: _result(is_active, code=3), start: _result(start, code=1)},
        "naswatch.probes.systemd",
        "naswatch.probes.scan",
    )
    config = config_from_dict({"scan": {"startup_grace_seconds": 0}}).scan

    report = run_scan(config, StageContext(sink=sink))

    assert [r.level for r in report.verdict.results] == [Level.CRITICAL]
    assert report.exit_code == 1
    assert all(argv[0] == "systemctl" for argv in stub.argvs())


def test_scan_sweeps_discovered_targets(sink, stub_commands) -> None:
    is_active = ("systemctl", "is-active", "--quiet", "clamav-daemon")
    lsblk = ("lsblk", "-no", "MOUNTPOINT", "/dev/sda")
    clamdscan = ("clamdscan", "--fdpass", "--multiscan", "/mnt/media")
    stub_commands(
        {
            is_active: _result(is_active),
            lsblk: _result(lsblk, "/mnt/media\n"),
            clamdscan: _result(clamdscan, "Infected files: 0\n"),
        },
        "naswatch.probes.systemd",
        "naswatch.probes.scan",
    )
    config = config_from_dict({"scan": {"drives": ["sda"]}}).scan

    report = run_scan(config, StageContext(sink=sink))

    assert [r.code for r in report.verdict.results] == ["ACTIVE", "CLEAN"]
    assert "Scanning filesystems: /mnt/media" in sink.primary_path.read_text(encoding="utf-8")


def test_beacons_stage_is_suppressed(sink, stub_commands) -> None:
    ss = ("ss", "-tuln")
    stub_commands(
        {ss: _result(ss, "Netid State Recv-Q Send-Q Local Peer\ntcp LISTEN 0 128 0.0.0.0:445 0.0.0.0:*\n")},
        "naswatch.probes.beacons",
    )
    beacons = config_from_dict({}).beacons

    report = run_beacons(beacons, StageContext(sink=sink))

    levels = {r.name: r.level for r in report.verdict.results}
    assert levels["Beacon Samba"] is Level.INFO
    assert levels["Beacon MiniDLNA"] is Level.ERROR
    assert report.verdict.failure_count == 1
    assert report.exit_code == 0


def test_beacons_socket_query_failure(sink, stub_commands) -> None:
    ss = ("ss", "-tuln")
    stub_commands({ss: _result(ss, code=127)}, "naswatch.probes.beacons")
    report = run_beacons(config_from_dict({}).beacons, StageContext(sink=sink))
    assert [r.code for r in report.verdict.results] == ["QUERY_FAILED"]
    assert report.exit_code == 0


def test_scan_skips_drive_whose_listing_times_out(sink, stub_commands, monkeypatch: pytest.MonkeyPatch) -> None:
    is_active = ("systemctl", "is-active", "--quiet", "clamav-daemon")
    clamdscan = ("clamdscan", "--fdpass", "--multiscan", "/srv/data")
    stub = stub_commands(
        {is_active: _result(is_active), clamdscan: _result(clamdscan, "Infected files: 0\n")},
        "naswatch.probes.systemd",
        "naswatch.probes.scan",
    )
    monkeypatch.setattr("naswatch.probes.scan.run_command", _timing_out(stub, "lsblk"))
    config = config_from_dict({"scan": {"drives": ["sda"], "fallback_targets": ["/srv/data"]}}).scan

    report = run_scan(config, StageContext(sink=sink))

    assert [r.code for r in report.verdict.results] == ["ACTIVE", "CLEAN"]
    assert report.exit_code == 0
    last_line = sink.primary_path.read_text(encoding="utf-8").splitlines()[-1]
    assert "Malware scan: all 2 checks green." in last_line


def test_beacons_socket_query_timeout(sink, stub_commands, monkeypatch: pytest.MonkeyPatch) -> None:
    stub = stub_commands({}, "naswatch.probes.beacons")
    monkeypatch.setattr("naswatch.probes.beacons.run_command", _timing_out(stub, "ss"))

    report = run_beacons(config_from_dict({}).beacons, StageContext(sink=sink))

    assert [r.code for r in report.verdict.results] == ["QUERY_FAILED"]
    assert report.verdict.overall_level is Level.ERROR
    assert report.exit_code == 0
    last_line = sink.primary_path.read_text(encoding="utf-8").splitlines()[-1]
    assert "[ERROR]" in last_line
    assert "Beacon check:" in last_line
