"""Tests for backup repository access and freshness probes."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from naswatch.checks import Level
from naswatch.probes.backup import BorgAccessCheck, BorgFreshnessCheck, archive_date
from naswatch.probes.exec import ExecResult

BACKUP = "naswatch.probes.backup"


def _result(argv: tuple[str, ...], stdout: str = "", code: int = 0, stderr: str = "") -> ExecResult:
    return ExecResult(argv=argv, returncode=code, stdout=stdout, stderr=stderr)


@pytest.fixture
def repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    monkeypatch.setattr(f"{BACKUP}.is_mountpoint", lambda path: True)
    repository = tmp_path / "borg_repo"
    repository.mkdir()
    passphrase = tmp_path / "passphrase"
    passphrase.write_text("correct horse\n", encoding="utf-8")
    return {"mount": tmp_path, "repository": repository, "passphrase": passphrase}


def _access(repo: dict[str, Path]) -> BorgAccessCheck:
    return BorgAccessCheck(repo["mount"], repo["repository"], repo["passphrase"])


def test_unmounted_backup_drive_is_critical(repo: dict[str, Path], monkeypatch: pytest.MonkeyPatch, stub_commands) -> None:
    monkeypatch.setattr(f"{BACKUP}.is_mountpoint", lambda path: False)
    stub = stub_commands({}, BACKUP)
    result = _access(repo).run()
    assert result.level is Level.CRITICAL
    assert result.code == "NOT_MOUNTED"
    assert stub.calls == []


def test_missing_repository_is_critical(repo: dict[str, Path]) -> None:
    repo["repository"].rmdir()
    result = _access(repo).run()
    assert result.level is Level.CRITICAL
    assert result.code == "REPO_MISSING"


def test_missing_passphrase_is_critical(repo: dict[str, Path]) -> None:
    repo["passphrase"].unlink()
    assert _access(repo).run().code == "PASSPHRASE_MISSING"


def test_passphrase_goes_to_child_env_only(repo: dict[str, Path], stub_commands) -> None:
    argv = ("borg", "info", str(repo["repository"]))
    stub = stub_commands({argv: _result(argv, "Repository ID: 42\n")}, BACKUP)
    result = _access(repo).run()
    assert result.level is Level.SUCCESS
    assert stub.calls == [(argv, {"BORG_PASSPHRASE": "correct horse"})]
    assert "correct horse" not in result.message


def test_unreadable_repository_is_error(repo: dict[str, Path], stub_commands) -> None:
    argv = ("borg", "info", str(repo["repository"]))
    stub_commands({argv: _result(argv, code=2, stderr="passphrase supplied in BORG_PASSPHRASE is incorrect\n")}, BACKUP)
    result = _access(repo).run()
    assert result.level is Level.ERROR
    assert result.detail == ("passphrase supplied in BORG_PASSPHRASE is incorrect",)


def _freshness(repo: dict[str, Path], today: date, days: int = 1) -> BorgFreshnessCheck:
    return BorgFreshnessCheck(repo["repository"], repo["passphrase"], freshness_days=days, today=lambda: today)


def test_fresh_archive_is_success(repo: dict[str, Path], stub_commands) -> None:
    argv = ("borg", "list", "--short", str(repo["repository"]))
    stub_commands({argv: _result(argv, "nas-2024-05-01\nnas-2024-05-02\n")}, BACKUP)
    result = _freshness(repo, date(2024, 5, 3)).run()
    assert result.level is Level.SUCCESS
    assert "nas-2024-05-02" in result.message


def test_stale_archive_is_only_a_warning(repo: dict[str, Path], stub_commands) -> None:
    argv = ("borg", "list", "--short", str(repo["repository"]))
    stub_commands({argv: _result(argv, "nas-2024-05-01\n")}, BACKUP)
    result = _freshness(repo, date(2024, 5, 9)).run()
    assert result.level is Level.WARNING
    assert result.code == "STALE"


def test_freshness_window_is_configurable(repo: dict[str, Path], stub_commands) -> None:
    argv = ("borg", "list", "--short", str(repo["repository"]))
    stub_commands({argv: _result(argv, "nas-2024-05-01\n")}, BACKUP)
    assert _freshness(repo, date(2024, 5, 9), days=7).run().code == "STALE"
    assert _freshness(repo, date(2024, 5, 8), days=7).run().code == "FRESH"


def test_empty_repository_is_warning(repo: dict[str, Path], stub_commands) -> None:
    argv = ("borg", "list", "--short", str(repo["repository"]))
    stub_commands({argv: _result(argv, "\n")}, BACKUP)
    assert _freshness(repo, date(2024, 5, 3)).run().code == "NO_ARCHIVES"


def test_undated_archive_name_falls_back_to_archive_info(repo: dict[str, Path], stub_commands) -> None:
    listing = ("borg", "list", "--short", str(repo["repository"]))
    info = ("borg", "info", f"{repo['repository']}::nightly")
    stub_commands(
        {
            listing: _result(listing, "nightly\n"),
            info: _result(info, "Archive name: nightly\nTime (start): Thu, 2024-05-02 03:00:01\n"),
        },
        BACKUP,
    )
    result = _freshness(repo, date(2024, 5, 3)).run()
    assert result.code == "FRESH"


def test_archive_date_parsing() -> None:
    assert archive_date("tower-2024-02-29T03:00") == date(2024, 2, 29)
    assert archive_date("tower-2023-02-30") is None
    assert archive_date("nightly") is None
