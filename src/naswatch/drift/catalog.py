"""Audit catalog: the static list of managed files and their staged copies."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from naswatch.drift.types import DriftCategory, DriftPair

LIVE_BIN = "/usr/local/sbin"
LIVE_UNITS = "/etc/systemd/system"


def _entry(label: str, category: str, source: str, reference: str) -> dict[str, str]:
    return {"label": label, "category": category, "source": source, "reference": reference}


# One entry per managed file. Review this list whenever a managed artifact is added.
DEFAULT_CATALOG_ENTRIES: list[dict[str, str]] = [
    _entry("Boot Script", "executable", f"{LIVE_BIN}/nas_stage_boot_verify.sh",
           "boot_bak/boot_script/nas_stage_boot_verify.sh"),
    _entry("Shutdown Script", "executable", f"{LIVE_BIN}/nas_stage_shutdown.sh",
           "shutdown_bak/shutdown_script/nas_stage_shutdown.sh"),
    _entry("UFW Script", "executable", f"{LIVE_BIN}/nas_stage_ufw_check.sh",
           "ufw_bak/ufw_script/nas_stage_ufw_check.sh"),
    _entry("Mullvad Script", "executable", f"{LIVE_BIN}/nas_stage_mullvad_check.sh",
           "mullvad_bak/mullvad_script/nas_stage_mullvad_check.sh"),
    _entry("DLNA Script", "executable", f"{LIVE_BIN}/nas_stage_dlna_maint.sh",
           "dlna_bak/dlna_script/nas_stage_dlna_maint.sh"),
    _entry("Borg Script", "executable", f"{LIVE_BIN}/nas_stage_borg_integrity.sh",
           "borg_bak/borg_script/nas_stage_borg_integrity.sh"),
    _entry("ClamAV Script", "executable", f"{LIVE_BIN}/nas_stage_clamav_scan.sh",
           "clamav_bak/clamav_script/nas_stage_clamav_scan.sh"),
    _entry("Update Script", "executable", f"{LIVE_BIN}/nas_stage_update.sh",
           "update_bak/update_script/nas_stage_update.sh"),
    _entry("Audit Script (Self)", "executable", f"{LIVE_BIN}/nas_stage_audit.sh",
           "audit_bak/audit_script/nas_stage_audit.sh"),
    _entry("Boot Service", "service_unit", f"{LIVE_UNITS}/nas-boot-verify.service",
           "boot_bak/boot_service/nas-boot-verify.service"),
    _entry("Shutdown Service", "service_unit", f"{LIVE_UNITS}/nas-stage-shutdown.service",
           "shutdown_bak/shutdown_service/nas-stage-shutdown.service"),
    _entry("UFW Service", "service_unit", f"{LIVE_UNITS}/nas-ufw-check.service",
           "ufw_bak/ufw_service/nas-ufw-check.service"),
    _entry("Mullvad Service", "service_unit", f"{LIVE_UNITS}/nas-mullvad-check.service",
           "mullvad_bak/mullvad_service/nas-mullvad-check.service"),
    _entry("DLNA Service", "service_unit", f"{LIVE_UNITS}/nas-dlna-maint.service",
           "dlna_bak/dlna_service/nas-dlna-maint.service"),
    _entry("Borg Service", "service_unit", f"{LIVE_UNITS}/nas-borg-integrity.service",
           "borg_bak/borg_service/nas-borg-integrity.service"),
    _entry("ClamAV Service", "service_unit", f"{LIVE_UNITS}/nas-clamav-weekly.service",
           "clamav_bak/clamav_service/nas-clamav-weekly.service"),
    _entry("Update Service", "service_unit", f"{LIVE_UNITS}/nas-update-weekly.service",
           "update_bak/update_service/nas-update-weekly.service"),
    _entry("Audit Service", "service_unit", f"{LIVE_UNITS}/nas-audit-weekly.service",
           "audit_bak/audit_service/nas-audit-weekly.service"),
    _entry("DLNA Timer", "timer_unit", f"{LIVE_UNITS}/nas-dlna-maint.timer",
           "dlna_bak/dlna_service/nas-dlna-maint.timer"),
    _entry("Borg Timer", "timer_unit", f"{LIVE_UNITS}/nas-borg-integrity.timer",
           "borg_bak/borg_service/nas-borg-integrity.timer"),
    _entry("ClamAV Timer", "timer_unit", f"{LIVE_UNITS}/nas-clamav-weekly.timer",
           "clamav_bak/clamav_service/nas-clamav-weekly.timer"),
    _entry("Update Timer", "timer_unit", f"{LIVE_UNITS}/nas-update-weekly.timer",
           "update_bak/update_service/nas-update-weekly.timer"),
    _entry("Audit Timer", "timer_unit", f"{LIVE_UNITS}/nas-audit-weekly.timer",
           "audit_bak/audit_service/nas-audit-weekly.timer"),
    _entry("System Fstab", "settings", "/etc/fstab", "fstab_bak/fstab.template"),
    _entry("ClamAV Config", "settings", "/etc/clamav/clamd.conf",
           "clamav_bak/clamav_settings/clamd.conf"),
    _entry("MiniDLNA Config", "settings", "/etc/minidlna.conf",
           "dlna_bak/dlna_settings/minidlna.conf"),
    _entry("Mullvad Settings", "settings", "/etc/mullvad-vpn/settings.json",
           "mullvad_bak/mullvad_settings/etc_mullvad-vpn/settings.json"),
    _entry("UFW User Rules (IPv4)", "settings", "/etc/ufw/user.rules",
           "ufw_bak/ufw_settings/user.rules"),
    _entry("UFW User Rules (IPv6)", "settings", "/etc/ufw/user6.rules",
           "ufw_bak/ufw_settings/user6.rules"),
]


class CatalogError(ValueError):
    """Malformed audit catalog entry."""


def _parse_category(value: Any, where: str) -> DriftCategory:
    raw = str(value or "").strip().lower()
    try:
        return DriftCategory(raw)
    except ValueError:
        valid = ", ".join(c.value for c in DriftCategory)
        raise CatalogError(f"{where}.category must be one of {valid}, got `{raw}`") from None


def build_catalog(entries: list[dict[str, Any]], working_root: Path) -> tuple[DriftPair, ...]:
    """Normalize raw catalog entries into DriftPairs.

    Relative ``reference`` paths resolve against ``working_root``. Labels
    must be unique since they name results within one run.
    """
    pairs: list[DriftPair] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        where = f"audit.catalog[{index}]"
        if not isinstance(entry, dict):
            raise CatalogError(f"{where} must be a mapping")

        label = str(entry.get("label", "")).strip()
        source = str(entry.get("source", "")).strip()
        reference = str(entry.get("reference", "")).strip()
        if not label:
            raise CatalogError(f"{where}.label is required")
        if not source or not reference:
            raise CatalogError(f"{where} ({label}) must name both source and reference")
        if label in seen:
            raise CatalogError(f"{where}: duplicate label `{label}`")
        seen.add(label)

        reference_path = Path(reference)
        if not reference_path.is_absolute():
            reference_path = working_root / reference_path

        pairs.append(
            DriftPair(
                label=label,
                category=_parse_category(entry.get("category"), where),
                source_path=Path(source),
                reference_path=reference_path,
            )
        )
    return tuple(pairs)
