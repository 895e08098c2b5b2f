"""VPN tunnel health: daemon running and tunnel interface up."""

from __future__ import annotations

from naswatch.checks.types import ExitPolicy
from naswatch.config import VpnConfig
from naswatch.probes.systemd import ServiceDaemonCheck
from naswatch.probes.vpn import VpnInterfaceCheck
from naswatch.stages.base import StageContext, StageReport, finish, run_sections

STAGE = "vpn"


def run_vpn(config: VpnConfig, context: StageContext) -> StageReport:
    context.sink.info("Checking Mullvad VPN status...")
    results = run_sections(
        context,
        [
            (
                "VPN Daemon",
                [
                    ServiceDaemonCheck(
                        config.daemon,
                        action="restart",
                        grace_seconds=config.grace_seconds,
                        timeout=context.timeout,
                    )
                ],
            ),
            (
                "VPN Tunnel",
                [
                    VpnInterfaceCheck(
                        config.interface,
                        reconnect=config.reconnect,
                        grace_seconds=config.grace_seconds,
                        timeout=context.timeout,
                    )
                ],
            ),
        ],
    )
    return finish(STAGE, "VPN check", context, results, ExitPolicy.PROPAGATE)
