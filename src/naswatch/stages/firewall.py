"""Firewall posture: enabled, with the required rules in place."""

from __future__ import annotations

from naswatch.checks.types import Check, ExitPolicy
from naswatch.config import FirewallConfig
from naswatch.probes.firewall import UfwRuleCheck, UfwStatusCheck
from naswatch.stages.base import StageContext, StageReport, finish, run_sections

STAGE = "firewall"


def run_firewall(config: FirewallConfig, context: StageContext) -> StageReport:
    context.sink.info("Checking UFW firewall status...")
    rules: list[Check] = [UfwRuleCheck(rule, timeout=context.timeout) for rule in config.required_rules]
    results = run_sections(
        context,
        [
            ("Firewall State", [UfwStatusCheck(enable_if_inactive=config.enable_if_inactive, timeout=context.timeout)]),
            ("Required Rules", rules),
        ],
    )
    return finish(STAGE, "Firewall check", context, results, ExitPolicy.PROPAGATE)
