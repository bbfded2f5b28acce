from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import json
import yaml


REPORT_KINDS = {"backup", "restore"}


@dataclass(slots=True)
class SnapshotSource:
    path: str
    output: Path


@dataclass(slots=True)
class HostConfig:
    hostname: str
    snapshots: list[SnapshotSource] = field(default_factory=list)
    phase: str | None = None
    duration: str = ""
    error: str = ""


@dataclass(slots=True)
class RepositorySources:
    check_output: Path | None = None
    forget_output: Path | None = None
    stats_output: Path | None = None


@dataclass(slots=True)
class ReportConfig:
    kind: str
    output_file: Path
    hosts: list[HostConfig]
    repository: RepositorySources = field(default_factory=RepositorySources)


def _as_path(value: Any, field_name: str, base_dir: Path) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string path")
    path = Path(value).expanduser()
    return path if path.is_absolute() else base_dir / path


def _as_optional_path(value: Any, field_name: str, base_dir: Path) -> Path | None:
    if value is None:
        return None
    return _as_path(value, field_name, base_dir)


def _as_str(value: Any, field_name: str, default: str = "") -> str:
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")
    return value


def _load_raw_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise ValueError(f"Config file does not exist: {config_path}")

    suffix = config_path.suffix.lower()
    text = config_path.read_text(encoding="utf-8")
    if suffix in {".yml", ".yaml"}:
        loaded = yaml.safe_load(text)
    elif suffix == ".json":
        loaded = json.loads(text)
    else:
        raise ValueError("Config file must be .yaml/.yml or .json")

    if not isinstance(loaded, dict):
        raise ValueError("Config root must be an object")
    return loaded


def _load_snapshots(raw_snapshots: Any, prefix: str, base_dir: Path) -> list[SnapshotSource]:
    if raw_snapshots is None:
        return []
    if not isinstance(raw_snapshots, list):
        raise ValueError(f"{prefix}.snapshots must be a list")

    snapshots: list[SnapshotSource] = []
    for index, raw_snapshot in enumerate(raw_snapshots):
        field_prefix = f"{prefix}.snapshots[{index}]"
        if not isinstance(raw_snapshot, dict):
            raise ValueError(f"{field_prefix} must be an object")
        path = raw_snapshot.get("path")
        if not isinstance(path, str) or not path.strip():
            raise ValueError(f"{field_prefix}.path must be a non-empty string")
        snapshots.append(
            SnapshotSource(
                path=path,
                output=_as_path(raw_snapshot.get("output"), f"{field_prefix}.output", base_dir),
            )
        )
    return snapshots


def _load_repository(raw_repository: Any, base_dir: Path) -> RepositorySources:
    if raw_repository is None:
        return RepositorySources()
    if not isinstance(raw_repository, dict):
        raise ValueError("repository must be an object")
    return RepositorySources(
        check_output=_as_optional_path(raw_repository.get("checkOutput"), "repository.checkOutput", base_dir),
        forget_output=_as_optional_path(raw_repository.get("forgetOutput"), "repository.forgetOutput", base_dir),
        stats_output=_as_optional_path(raw_repository.get("statsOutput"), "repository.statsOutput", base_dir),
    )


def load_config(config_path: Path) -> ReportConfig:
    raw = _load_raw_config(config_path)
    base_dir = config_path.parent

    kind = raw.get("kind", "backup")
    if not isinstance(kind, str) or kind not in REPORT_KINDS:
        raise ValueError("kind must be one of: backup, restore")

    output_file = _as_path(raw.get("outputFile"), "outputFile", base_dir)

    raw_hosts = raw.get("hosts")
    if not isinstance(raw_hosts, list) or not raw_hosts:
        raise ValueError("Config must contain non-empty 'hosts' list")

    hosts: list[HostConfig] = []
    names: set[str] = set()

    for index, raw_host in enumerate(raw_hosts):
        prefix = f"hosts[{index}]"
        if not isinstance(raw_host, dict):
            raise ValueError(f"{prefix} must be an object")

        hostname = raw_host.get("hostname")
        if not isinstance(hostname, str) or not hostname.strip():
            raise ValueError(f"{prefix}.hostname must be a non-empty string")
        if hostname in names:
            raise ValueError(f"Duplicate hostname: {hostname}")
        names.add(hostname)

        snapshots = _load_snapshots(raw_host.get("snapshots"), prefix, base_dir)
        if kind == "restore" and snapshots:
            raise ValueError(f"{prefix}.snapshots is only allowed in backup reports")

        raw_phase = raw_host.get("phase")
        hosts.append(
            HostConfig(
                hostname=hostname,
                snapshots=snapshots,
                phase=_as_str(raw_phase, f"{prefix}.phase") if raw_phase is not None else None,
                duration=_as_str(raw_host.get("duration"), f"{prefix}.duration"),
                error=_as_str(raw_host.get("error"), f"{prefix}.error"),
            )
        )

    raw_repository = raw.get("repository")
    if kind == "restore" and raw_repository is not None:
        raise ValueError("repository is only allowed in backup reports")

    return ReportConfig(
        kind=kind,
        output_file=output_file,
        hosts=hosts,
        repository=_load_repository(raw_repository, base_dir),
    )


def select_hosts(config: ReportConfig, hostname: str | None) -> list[HostConfig]:
    if not hostname:
        return config.hosts
    matched = [host for host in config.hosts if host.hostname == hostname]
    if not matched:
        raise ValueError(f"No host named '{hostname}' found")
    return matched
