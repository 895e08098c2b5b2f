"""Load and validate naswatch configuration."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from naswatch.checks.types import Level
from naswatch.drift.catalog import DEFAULT_CATALOG_ENTRIES, CatalogError, build_catalog
from naswatch.drift.types import DriftPair
from naswatch.schemas import validate_data

NASWATCH_CONFIG_ENV = "NASWATCH_CONFIG"
DEFAULT_CONFIG_PATH = Path("/etc/naswatch/config.yaml")

CONFIG_REASON_MISSING = "CONFIG_MISSING"
CONFIG_REASON_PARSE_ERROR = "CONFIG_PARSE_ERROR"
CONFIG_REASON_SCHEMA_INVALID = "CONFIG_SCHEMA_INVALID"

# Keep this literal deterministic; it is written verbatim by `naswatch config init`.
CONFIG_TEMPLATE: dict[str, Any] = {
    "logging": {
        "log_dir": "/mnt/nas_sys_core/logs_files",
        "mirror_dir": "/mnt/backup/@logs",
        "mirror_mount": None,
        "core_log": "full_core.log",
        "timestamp_format": "%d/%m/%y %H:%M:%S",
        "echo": True,
    },
    "probes": {
        "timeout_seconds": 120,
        "max_workers": 1,
    },
    "boot": {
        "drives": ["sda", "sdb", "sdc", "sdd", "sde"],
        "block_devices": ["/dev/mmcblk0"],
        "mounts_rw": ["/mnt/nas_sys_core", "/mnt/media", "/mnt/backup", "/mnt/storage"],
        "mounts_ro": ["/mnt/media_ro"],
        "probe_marker": ".nas_probe",
        "pool": {
            "mountpoint": "/mnt/backup",
            "fs_type": "btrfs",
            "expected_devices": 2,
        },
        "baseline": {
            "live": "/etc/fstab",
            "template": "/mnt/nas_sys_core/config_backups/fstab_bak/fstab.template",
        },
    },
    "audit": {
        "working_root": "/mnt/nas_sys_core/config_backups",
        "golden_root": "/mnt/backup/@nas/config_backups",
        "golden_mount": "/mnt/backup",
        "exclude": ["*passphrase*"],
        "include_diff": False,
        "catalog": DEFAULT_CATALOG_ENTRIES,
    },
    "backup": {
        "mount": "/mnt/backup",
        "repository": "/mnt/backup/@tower/borg_repo",
        "passphrase_file": "/mnt/nas_sys_core/config_backups/borg_bak/borg_settings/passphrase",
        "freshness_days": 1,
    },
    "firewall": {
        "required_rules": ["192.168.0.0/24"],
        "enable_if_inactive": True,
    },
    "vpn": {
        "daemon": "mullvad-daemon",
        "interface": "wg0-mullvad",
        "grace_seconds": 15,
        "reconnect": True,
    },
    "scan": {
        "daemon": "clamav-daemon",
        "drives": ["sda", "sdb", "sdc", "sdd", "sde"],
        "exclude_paths": ["/mnt/backup/@tower/borg_repo", "/mnt/backup/@tower"],
        "fallback_targets": ["/mnt/nas_sys_core", "/mnt/storage"],
        "startup_grace_seconds": 30,
        "scan_timeout_seconds": 21600,
    },
    "beacons": [
        {"name": "MiniDLNA", "port": 8200, "level": "ERROR"},
        {"name": "Plex", "port": 32400, "level": "WARNING"},
        {"name": "Samba", "port": 445, "level": "WARNING"},
        {"name": "NFS", "port": 2049, "level": "WARNING"},
    ],
}


class ConfigError(ValueError):
    """Configuration validation error."""

    reason_code: str

    def __init__(self, message: str, reason_code: str = CONFIG_REASON_SCHEMA_INVALID) -> None:
        super().__init__(message)
        self.reason_code = reason_code


@dataclass(frozen=True)
class LoggingConfig:
    log_dir: Path
    mirror_dir: Path | None
    mirror_mount: Path | None
    core_log: str
    timestamp_format: str
    echo: bool


@dataclass(frozen=True)
class ProbeConfig:
    timeout_seconds: float
    max_workers: int


@dataclass(frozen=True)
class PoolConfig:
    mountpoint: Path
    fs_type: str
    expected_devices: int


@dataclass(frozen=True)
class BaselineConfig:
    live: Path
    template: Path


@dataclass(frozen=True)
class BootConfig:
    drives: tuple[str, ...]
    block_devices: tuple[Path, ...]
    mounts_rw: tuple[Path, ...]
    mounts_ro: tuple[Path, ...]
    probe_marker: str
    pool: PoolConfig | None
    baseline: BaselineConfig | None


@dataclass(frozen=True)
class AuditConfig:
    working_root: Path
    golden_root: Path
    golden_mount: Path | None
    exclude: tuple[str, ...]
    include_diff: bool
    catalog: tuple[DriftPair, ...]


@dataclass(frozen=True)
class BackupConfig:
    mount: Path
    repository: Path
    passphrase_file: Path
    freshness_days: int


@dataclass(frozen=True)
class FirewallConfig:
    required_rules: tuple[str, ...]
    enable_if_inactive: bool


@dataclass(frozen=True)
class VpnConfig:
    daemon: str
    interface: str
    grace_seconds: float
    reconnect: bool


@dataclass(frozen=True)
class ScanConfig:
    daemon: str
    drives: tuple[str, ...]
    exclude_paths: tuple[Path, ...]
    fallback_targets: tuple[Path, ...]
    startup_grace_seconds: float
    scan_timeout_seconds: float


@dataclass(frozen=True)
class BeaconSpec:
    name: str
    port: int
    level: Level


@dataclass(frozen=True)
class NasConfig:
    """Normalized configuration for every stage."""

    logging: LoggingConfig
    probes: ProbeConfig
    boot: BootConfig
    audit: AuditConfig
    backup: BackupConfig
    firewall: FirewallConfig
    vpn: VpnConfig
    scan: ScanConfig
    beacons: tuple[BeaconSpec, ...]
    path: Path | None


def resolve_config_path(cli_path: Path | None = None) -> Path:
    """Resolve config path: CLI option, then environment, then the system default."""
    if cli_path is not None:
        return cli_path.expanduser()
    env_path = os.getenv(NASWATCH_CONFIG_ENV, "").strip()
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def render_config_template() -> str:
    return yaml.safe_dump(CONFIG_TEMPLATE, sort_keys=False)


def ensure_default_config(path: Path, *, force: bool = False) -> Path:
    """Write the default configuration template."""
    if path.exists() and not force:
        raise FileExistsError(f"Config file already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_config_template(), encoding="utf-8")
    return path


def read_config_document(path: Path | None = None, *, required: bool = False) -> tuple[Path | None, dict[str, Any]]:
    """Read the raw YAML document without validating it.

    Returns the path actually read (None when falling back to defaults)
    and the parsed mapping.
    """
    resolved = resolve_config_path(path)
    if not resolved.exists():
        if required or path is not None:
            raise ConfigError(
                f"Missing config at {resolved}. Run `naswatch config init --path {resolved}` first.",
                CONFIG_REASON_MISSING,
            )
        return None, {}

    try:
        raw = yaml.safe_load(resolved.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"{resolved} parse error: {exc}", CONFIG_REASON_PARSE_ERROR) from exc
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(
            f"{resolved} parse error: expected mapping at top level",
            CONFIG_REASON_PARSE_ERROR,
        )
    return resolved, raw


def load_config(path: Path | None = None, *, required: bool = False) -> NasConfig:
    """Load, validate, and normalize configuration.

    Args:
        path: Explicit config path (otherwise resolved via resolve_config_path)
        required: Raise when the file is missing instead of using defaults

    Raises:
        ConfigError: On missing (when required), unparsable, or invalid config
    """
    source, raw = read_config_document(path, required=required)
    return config_from_dict(raw, path=source)


def render_effective_config(raw: dict[str, Any]) -> str:
    """YAML for the configuration that results from overlaying raw on the defaults."""
    return yaml.safe_dump(_merged(raw), sort_keys=False)



def _merged(raw: dict[str, Any]) -> dict[str, Any]:
    """Overlay user sections onto the template, one level deep."""
    merged = copy.deepcopy(CONFIG_TEMPLATE)
    for key, value in raw.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


def _path(value: Any) -> Path | None:
    if value is None:
        return None
    return Path(str(value)).expanduser()


def _paths(values: list[Any]) -> tuple[Path, ...]:
    return tuple(Path(str(v)).expanduser() for v in values)


def config_from_dict(raw: dict[str, Any], *, path: Path | None = None) -> NasConfig:
    """Validate raw (partial) config against the schema and normalize it."""
    errors = validate_data(raw, "config")
    if errors:
        rendered = "\n".join(f"  - {msg}" for msg in errors)
        raise ConfigError(f"config failed schema validation:\n{rendered}")

    data = _merged(raw)
    log = data["logging"]
    probes = data["probes"]
    boot = data["boot"]
    audit = data["audit"]

    pool_raw = boot.get("pool")
    pool = None
    if pool_raw:
        pool = PoolConfig(
            mountpoint=Path(pool_raw.get("mountpoint", "/mnt/backup")),
            fs_type=str(pool_raw.get("fs_type", "btrfs")),
            expected_devices=int(pool_raw.get("expected_devices", 2)),
        )

    baseline_raw = boot.get("baseline")
    baseline = None
    if baseline_raw:
        if "live" not in baseline_raw or "template" not in baseline_raw:
            raise ConfigError("boot.baseline requires both `live` and `template`")
        baseline = BaselineConfig(live=Path(baseline_raw["live"]), template=Path(baseline_raw["template"]))

    working_root = Path(audit["working_root"])
    try:
        catalog = build_catalog(list(audit.get("catalog") or []), working_root)
    except CatalogError as exc:
        raise ConfigError(str(exc)) from exc

    beacons = tuple(
        BeaconSpec(
            name=entry["name"],
            port=int(entry["port"]),
            level=Level[entry.get("level", "WARNING")],
        )
        for entry in data["beacons"]
    )

    return NasConfig(
        logging=LoggingConfig(
            log_dir=Path(log["log_dir"]),
            mirror_dir=_path(log.get("mirror_dir")),
            mirror_mount=_path(log.get("mirror_mount")),
            core_log=str(log["core_log"]),
            timestamp_format=str(log["timestamp_format"]),
            echo=bool(log["echo"]),
        ),
        probes=ProbeConfig(
            timeout_seconds=float(probes["timeout_seconds"]),
            max_workers=int(probes["max_workers"]),
        ),
        boot=BootConfig(
            drives=tuple(boot["drives"]),
            block_devices=_paths(boot["block_devices"]),
            mounts_rw=_paths(boot["mounts_rw"]),
            mounts_ro=_paths(boot["mounts_ro"]),
            probe_marker=str(boot["probe_marker"]),
            pool=pool,
            baseline=baseline,
        ),
        audit=AuditConfig(
            working_root=working_root,
            golden_root=Path(audit["golden_root"]),
            golden_mount=_path(audit.get("golden_mount")),
            exclude=tuple(audit["exclude"]),
            include_diff=bool(audit["include_diff"]),
            catalog=catalog,
        ),
        backup=BackupConfig(
            mount=Path(data["backup"]["mount"]),
            repository=Path(data["backup"]["repository"]),
            passphrase_file=Path(data["backup"]["passphrase_file"]),
            freshness_days=int(data["backup"]["freshness_days"]),
        ),
        firewall=FirewallConfig(
            required_rules=tuple(data["firewall"]["required_rules"]),
            enable_if_inactive=bool(data["firewall"]["enable_if_inactive"]),
        ),
        vpn=VpnConfig(
            daemon=str(data["vpn"]["daemon"]),
            interface=str(data["vpn"]["interface"]),
            grace_seconds=float(data["vpn"]["grace_seconds"]),
            reconnect=bool(data["vpn"]["reconnect"]),
        ),
        scan=ScanConfig(
            daemon=str(data["scan"]["daemon"]),
            drives=tuple(data["scan"]["drives"]),
            exclude_paths=_paths(data["scan"]["exclude_paths"]),
            fallback_targets=_paths(data["scan"]["fallback_targets"]),
            startup_grace_seconds=float(data["scan"]["startup_grace_seconds"]),
            scan_timeout_seconds=float(data["scan"]["scan_timeout_seconds"]),
        ),
        beacons=beacons,
        path=path,
    )
