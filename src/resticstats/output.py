from __future__ import annotations

from pathlib import Path
import json

from resticstats.models import BackupOutput, RestoreOutput


def write_output(record: BackupOutput | RestoreOutput, file_path: Path) -> None:
    """Write ``record`` as two-space indented JSON, replacing ``file_path``."""
    file_path = Path(file_path)
    payload = json.dumps(record.to_dict(), indent=2)
    file_path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
    file_path.write_text(payload, encoding="utf-8")


def _read_json(file_path: Path) -> object:
    text = Path(file_path).read_text(encoding="utf-8")
    return json.loads(text)


def read_backup_output(file_path: Path) -> BackupOutput:
    return BackupOutput.from_dict(_read_json(file_path))


def read_restore_output(file_path: Path) -> RestoreOutput:
    return RestoreOutput.from_dict(_read_json(file_path))
