import json
from pathlib import Path

import pytest

from resticstats.models import (
    BackupOutput,
    FileStats,
    HostBackupStats,
    HostRestoreStats,
    RepositoryStats,
    RestoreOutput,
    SnapshotStats,
)
from resticstats.output import read_backup_output, read_restore_output, write_output


def _backup_output() -> BackupOutput:
    return BackupOutput(
        host_backup_stats=[
            HostBackupStats(
                hostname="host-0",
                phase="Succeeded",
                duration="1m2s",
                snapshots=[
                    SnapshotStats(
                        path="/data",
                        name="abcd1234",
                        total_size="4.000 KiB",
                        uploaded="2.000 KiB",
                        processing_time="1s",
                        file_stats=FileStats(total_files=14, new_files=0, modified_files=None, unmodified_files=10),
                    ),
                    SnapshotStats(path="/empty"),
                ],
            ),
            HostBackupStats(hostname="host-1", phase="Failed", error="/srv: boom"),
        ],
        repository_stats=RepositoryStats(
            integrity=False,
            size="1.000 MiB",
            snapshot_count=5,
            snapshots_removed_on_last_cleanup=0,
        ),
    )


def test_write_output_creates_parents_and_indents(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "dir" / "output.json"

    write_output(_backup_output(), target)

    text = target.read_text(encoding="utf-8")
    assert text.startswith('{\n  "hostBackupStats": [\n    {\n')
    loaded = json.loads(text)
    assert loaded["repository"] == {"integrity": False, "size": "1.000 MiB", "snapshotCount": 5}
    snapshot = loaded["hostBackupStats"][0]["snapshots"][0]
    assert snapshot["fileStats"] == {"totalFiles": 14, "newFiles": 0, "unmodifiedFiles": 10}
    assert loaded["hostBackupStats"][0]["snapshots"][1] == {"path": "/empty", "fileStats": {}}


def test_write_output_overwrites_existing_file(tmp_path: Path) -> None:
    target = tmp_path / "output.json"
    target.write_text("x" * 10_000, encoding="utf-8")

    write_output(RestoreOutput(), target)

    assert target.read_text(encoding="utf-8") == "{}"


def test_backup_output_round_trip(tmp_path: Path) -> None:
    target = tmp_path / "output.json"
    expected = _backup_output()

    write_output(expected, target)

    assert read_backup_output(target) == expected


def test_backup_output_round_trip_with_untested_integrity(tmp_path: Path) -> None:
    target = tmp_path / "output.json"
    expected = BackupOutput(repository_stats=RepositoryStats(integrity=None, snapshot_count=2))

    write_output(expected, target)

    assert "integrity" not in json.loads(target.read_text(encoding="utf-8"))["repository"]
    assert read_backup_output(target) == expected


def test_restore_output_round_trip(tmp_path: Path) -> None:
    target = tmp_path / "restore" / "output.json"
    expected = RestoreOutput(
        host_restore_stats=[
            HostRestoreStats(hostname="host-0", phase="Succeeded", duration="12s"),
            HostRestoreStats(hostname="host-1", phase="Failed", error="permission denied"),
        ]
    )

    write_output(expected, target)

    assert read_restore_output(target) == expected


def test_read_output_tolerates_missing_and_unknown_fields(tmp_path: Path) -> None:
    target = tmp_path / "output.json"
    target.write_text('{"hostBackupStats": [{"hostname": "h", "extra": 1}]}', encoding="utf-8")

    loaded = read_backup_output(target)

    assert loaded.host_backup_stats == [HostBackupStats(hostname="h")]
    assert loaded.repository_stats == RepositoryStats()


def test_read_output_missing_file_fails(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        read_backup_output(tmp_path / "missing.json")


def test_read_output_invalid_content_fails(tmp_path: Path) -> None:
    target = tmp_path / "output.json"
    target.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        read_restore_output(target)

    target.write_text('{"repository": {"snapshotCount": "five"}}', encoding="utf-8")
    with pytest.raises(ValueError, match="snapshotCount"):
        read_backup_output(target)

    target.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError, match="root must be an object"):
        read_restore_output(target)
