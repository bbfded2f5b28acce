from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


PHASE_SUCCEEDED = "Succeeded"
PHASE_FAILED = "Failed"


def _as_str(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")
    return value


def _as_int(value: Any, field_name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer")
    return value


def _as_optional_int(value: Any, field_name: str) -> int | None:
    if value is None:
        return None
    return _as_int(value, field_name)


def _as_optional_bool(value: Any, field_name: str) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    raise ValueError(f"{field_name} must be a boolean")


def _as_object(value: Any, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{field_name} must be an object")
    return value


def _as_list(value: Any, field_name: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list")
    return value


def _compact(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value not in (None, "", 0, [])}


@dataclass(slots=True, frozen=True)
class FileStats:
    total_files: int | None = None
    new_files: int | None = None
    modified_files: int | None = None
    unmodified_files: int | None = None

    def to_dict(self) -> dict[str, Any]:
        payload = {
            "totalFiles": self.total_files,
            "newFiles": self.new_files,
            "modifiedFiles": self.modified_files,
            "unmodifiedFiles": self.unmodified_files,
        }
        # zero is a reported count, only absent counters are dropped
        return {key: value for key, value in payload.items() if value is not None}

    @classmethod
    def from_dict(cls, raw: Any, field_name: str = "fileStats") -> "FileStats":
        data = _as_object(raw, field_name)
        return cls(
            total_files=_as_optional_int(data.get("totalFiles"), f"{field_name}.totalFiles"),
            new_files=_as_optional_int(data.get("newFiles"), f"{field_name}.newFiles"),
            modified_files=_as_optional_int(data.get("modifiedFiles"), f"{field_name}.modifiedFiles"),
            unmodified_files=_as_optional_int(data.get("unmodifiedFiles"), f"{field_name}.unmodifiedFiles"),
        )


@dataclass(slots=True, frozen=True)
class SnapshotStats:
    """Result of one ``restic backup`` run for one source path."""

    path: str
    name: str = ""
    total_size: str = ""
    uploaded: str = ""
    processing_time: str = ""
    file_stats: FileStats = field(default_factory=FileStats)

    def to_dict(self) -> dict[str, Any]:
        payload = _compact(
            {
                "name": self.name,
                "path": self.path,
                "totalSize": self.total_size,
                "uploaded": self.uploaded,
                "processingTime": self.processing_time,
            }
        )
        payload["fileStats"] = self.file_stats.to_dict()
        return payload

    @classmethod
    def from_dict(cls, raw: Any, field_name: str = "snapshot") -> "SnapshotStats":
        data = _as_object(raw, field_name)
        return cls(
            path=_as_str(data.get("path"), f"{field_name}.path"),
            name=_as_str(data.get("name"), f"{field_name}.name"),
            total_size=_as_str(data.get("totalSize"), f"{field_name}.totalSize"),
            uploaded=_as_str(data.get("uploaded"), f"{field_name}.uploaded"),
            processing_time=_as_str(data.get("processingTime"), f"{field_name}.processingTime"),
            file_stats=FileStats.from_dict(data.get("fileStats"), f"{field_name}.fileStats"),
        )


@dataclass(slots=True)
class HostBackupStats:
    hostname: str = ""
    phase: str = ""
    snapshots: list[SnapshotStats] = field(default_factory=list)
    duration: str = ""
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "hostname": self.hostname,
                "phase": self.phase,
                "snapshots": [snapshot.to_dict() for snapshot in self.snapshots],
                "duration": self.duration,
                "error": self.error,
            }
        )

    @classmethod
    def from_dict(cls, raw: Any, field_name: str = "hostBackupStats") -> "HostBackupStats":
        data = _as_object(raw, field_name)
        snapshots = _as_list(data.get("snapshots"), f"{field_name}.snapshots")
        return cls(
            hostname=_as_str(data.get("hostname"), f"{field_name}.hostname"),
            phase=_as_str(data.get("phase"), f"{field_name}.phase"),
            snapshots=[
                SnapshotStats.from_dict(item, f"{field_name}.snapshots[{index}]")
                for index, item in enumerate(snapshots)
            ],
            duration=_as_str(data.get("duration"), f"{field_name}.duration"),
            error=_as_str(data.get("error"), f"{field_name}.error"),
        )


@dataclass(slots=True)
class HostRestoreStats:
    hostname: str = ""
    phase: str = ""
    duration: str = ""
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "hostname": self.hostname,
                "phase": self.phase,
                "duration": self.duration,
                "error": self.error,
            }
        )

    @classmethod
    def from_dict(cls, raw: Any, field_name: str = "hostRestoreStats") -> "HostRestoreStats":
        data = _as_object(raw, field_name)
        return cls(
            hostname=_as_str(data.get("hostname"), f"{field_name}.hostname"),
            phase=_as_str(data.get("phase"), f"{field_name}.phase"),
            duration=_as_str(data.get("duration"), f"{field_name}.duration"),
            error=_as_str(data.get("error"), f"{field_name}.error"),
        )


@dataclass(slots=True)
class RepositoryStats:
    """Repository state after a backup session.

    ``integrity`` is ``None`` when no check ran, otherwise the check result.
    """

    integrity: bool | None = None
    size: str = ""
    snapshot_count: int = 0
    snapshots_removed_on_last_cleanup: int = 0

    def to_dict(self) -> dict[str, Any]:
        payload = _compact(
            {
                "size": self.size,
                "snapshotCount": self.snapshot_count,
                "snapshotsRemovedOnLastCleanup": self.snapshots_removed_on_last_cleanup,
            }
        )
        if self.integrity is not None:
            payload = {"integrity": self.integrity, **payload}
        return payload

    @classmethod
    def from_dict(cls, raw: Any, field_name: str = "repository") -> "RepositoryStats":
        data = _as_object(raw, field_name)
        return cls(
            integrity=_as_optional_bool(data.get("integrity"), f"{field_name}.integrity"),
            size=_as_str(data.get("size"), f"{field_name}.size"),
            snapshot_count=_as_int(data.get("snapshotCount"), f"{field_name}.snapshotCount"),
            snapshots_removed_on_last_cleanup=_as_int(
                data.get("snapshotsRemovedOnLastCleanup"),
                f"{field_name}.snapshotsRemovedOnLastCleanup",
            ),
        )


@dataclass(slots=True)
class BackupOutput:
    host_backup_stats: list[HostBackupStats] = field(default_factory=list)
    repository_stats: RepositoryStats = field(default_factory=RepositoryStats)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.host_backup_stats:
            payload["hostBackupStats"] = [host.to_dict() for host in self.host_backup_stats]
        payload["repository"] = self.repository_stats.to_dict()
        return payload

    @classmethod
    def from_dict(cls, raw: Any) -> "BackupOutput":
        if not isinstance(raw, dict):
            raise ValueError("Backup output root must be an object")
        hosts = _as_list(raw.get("hostBackupStats"), "hostBackupStats")
        return cls(
            host_backup_stats=[
                HostBackupStats.from_dict(item, f"hostBackupStats[{index}]") for index, item in enumerate(hosts)
            ],
            repository_stats=RepositoryStats.from_dict(raw.get("repository")),
        )


@dataclass(slots=True)
class RestoreOutput:
    host_restore_stats: list[HostRestoreStats] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        if not self.host_restore_stats:
            return {}
        return {"hostRestoreStats": [host.to_dict() for host in self.host_restore_stats]}

    @classmethod
    def from_dict(cls, raw: Any) -> "RestoreOutput":
        if not isinstance(raw, dict):
            raise ValueError("Restore output root must be an object")
        hosts = _as_list(raw.get("hostRestoreStats"), "hostRestoreStats")
        return cls(
            host_restore_stats=[
                HostRestoreStats.from_dict(item, f"hostRestoreStats[{index}]") for index, item in enumerate(hosts)
            ],
        )
