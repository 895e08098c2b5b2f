"""Tests for the VPN tunnel probe."""

from __future__ import annotations

import pytest

from naswatch.checks import Level
from naswatch.probes.exec import ExecResult
from naswatch.probes.vpn import VpnInterfaceCheck

VPN = "naswatch.probes.vpn"
LINK = ("ip", "link", "show", "wg0-mullvad")
CONNECT = ("mullvad", "connect")


def _rc(argv: tuple[str, ...], code: int) -> ExecResult:
    return ExecResult(argv=argv, returncode=code, stdout="", stderr="")


@pytest.fixture
def mullvad_installed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(f"{VPN}.shutil.which", lambda name: f"/usr/bin/{name}")


def test_tunnel_up(stub_commands) -> None:
    stub_commands({LINK: _rc(LINK, 0)}, VPN)
    assert VpnInterfaceCheck("wg0-mullvad").run().level is Level.SUCCESS


@pytest.mark.usefixtures("mullvad_installed")
def test_tunnel_reconnected(stub_commands) -> None:
    stub = stub_commands({LINK: [_rc(LINK, 1), _rc(LINK, 0)], CONNECT: _rc(CONNECT, 0)}, VPN)
    waits: list[float] = []

    def sleep(seconds: float) -> None:
        waits.append(seconds)
        assert stub.argvs() == [LINK, CONNECT]

    result = VpnInterfaceCheck("wg0-mullvad", grace_seconds=15, sleep=sleep).run()

    assert result.code == "RECONNECTED"
    assert result.level is Level.WARNING
    assert stub.argvs() == [LINK, CONNECT, LINK]
    assert waits == [15]


@pytest.mark.usefixtures("mullvad_installed")
def test_reconnect_failure_is_critical(stub_commands) -> None:
    stub_commands({LINK: _rc(LINK, 1), CONNECT: _rc(CONNECT, 1)}, VPN)
    assert VpnInterfaceCheck("wg0-mullvad").run().level is Level.CRITICAL


def test_missing_client_is_critical(stub_commands, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(f"{VPN}.shutil.which", lambda name: None)
    stub_commands({LINK: _rc(LINK, 1)}, VPN)
    result = VpnInterfaceCheck("wg0-mullvad").run()
    assert result.level is Level.CRITICAL
    assert result.code == "CLIENT_MISSING"
