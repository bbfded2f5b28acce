"""Parsers for the captured stdout of restic subcommands.

``restic backup --json`` streams status messages followed by one summary
message, without any separator requirement between them. ``forget --json``
and ``stats --json`` print a single document, ``check`` prints plain text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator
import json
import logging
import math

from resticstats.models import FileStats, SnapshotStats
from resticstats.units import format_bytes, format_seconds


CHECK_SUCCESS_MARKER = "no errors were found"
SUMMARY_MESSAGE_TYPE = "summary"
MAX_COUNT = 2**64 - 1
JSON_WHITESPACE = " \t\n\r"

log = logging.getLogger("resticstats.extractor")


def _as_text(output: bytes | str) -> str:
    if isinstance(output, (bytes, bytearray)):
        return bytes(output).decode("utf-8", errors="replace")
    return output


def _reject_constant(token: str) -> Any:
    raise ValueError(f"invalid JSON token: {token}")


def _as_optional_count(value: Any, field_name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_COUNT:
        raise ValueError(f"{field_name} must be an unsigned 64-bit integer")
    return value


def _as_count(value: Any, field_name: str) -> int:
    return _as_optional_count(value, field_name) or 0


def _as_opaque_list(value: Any, field_name: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list")
    return value


def _skip_whitespace(text: str, index: int) -> int:
    while index < len(text) and text[index] in JSON_WHITESPACE:
        index += 1
    return index


def iter_json_messages(output: bytes | str) -> Iterator[Any]:
    """Yield the JSON values of ``output`` one at a time, in document order.

    Values may follow each other directly or be separated by whitespace.
    Decoding is lazy: a malformed value raises ``json.JSONDecodeError`` only
    once the consumer advances to it.
    """
    text = _as_text(output)
    decoder = json.JSONDecoder(parse_constant=_reject_constant)
    index = _skip_whitespace(text, 0)
    while index < len(text):
        value, index = decoder.raw_decode(text, index)
        yield value
        index = _skip_whitespace(text, index)


@dataclass(slots=True)
class BackupSummary:
    message_type: str = ""
    files_new: int | None = None
    files_changed: int | None = None
    files_unmodified: int | None = None
    data_added: int = 0
    total_files_processed: int | None = None
    total_bytes_processed: int = 0
    total_duration: float = 0.0
    snapshot_id: str = ""

    @classmethod
    def from_message(cls, message: Any) -> "BackupSummary":
        if not isinstance(message, dict):
            raise ValueError("backup message must be a JSON object")

        message_type = message.get("message_type") or ""
        snapshot_id = message.get("snapshot_id") or ""
        if not isinstance(message_type, str):
            raise ValueError("message_type must be a string")
        if not isinstance(snapshot_id, str):
            raise ValueError("snapshot_id must be a string")

        total_duration = message.get("total_duration")
        if total_duration is None:
            total_duration = 0.0
        elif isinstance(total_duration, bool) or not isinstance(total_duration, (int, float)):
            raise ValueError("total_duration must be a number")
        try:
            total_duration = float(total_duration)
        except OverflowError:
            raise ValueError("total_duration is out of range") from None
        if not math.isfinite(total_duration):
            raise ValueError("total_duration must be finite")

        return cls(
            message_type=message_type,
            files_new=_as_optional_count(message.get("files_new"), "files_new"),
            files_changed=_as_optional_count(message.get("files_changed"), "files_changed"),
            files_unmodified=_as_optional_count(message.get("files_unmodified"), "files_unmodified"),
            data_added=_as_count(message.get("data_added"), "data_added"),
            total_files_processed=_as_optional_count(
                message.get("total_files_processed"), "total_files_processed"
            ),
            total_bytes_processed=_as_count(message.get("total_bytes_processed"), "total_bytes_processed"),
            total_duration=total_duration,
            snapshot_id=snapshot_id,
        )

    @property
    def is_summary(self) -> bool:
        return self.message_type == SUMMARY_MESSAGE_TYPE

    def to_snapshot_stats(self, path: str) -> SnapshotStats:
        return SnapshotStats(
            path=path,
            name=self.snapshot_id,
            total_size=format_bytes(self.total_bytes_processed),
            uploaded=format_bytes(self.data_added),
            processing_time=format_seconds(max(0, int(self.total_duration))),
            file_stats=FileStats(
                total_files=self.total_files_processed,
                new_files=self.files_new,
                modified_files=self.files_changed,
                unmodified_files=self.files_unmodified,
            ),
        )


@dataclass(slots=True)
class ForgetGroup:
    keep: list[Any] = field(default_factory=list)
    remove: list[Any] = field(default_factory=list)

    @classmethod
    def from_value(cls, value: Any, index: int) -> "ForgetGroup":
        if value is None:
            return cls()
        if not isinstance(value, dict):
            raise ValueError(f"forget group [{index}] must be an object")
        return cls(
            keep=_as_opaque_list(value.get("keep"), f"forget group [{index}].keep"),
            remove=_as_opaque_list(value.get("remove"), f"forget group [{index}].remove"),
        )


@dataclass(slots=True)
class StatsContainer:
    total_size: int = 0


def extract_backup_info(output: bytes | str, path: str) -> SnapshotStats:
    """Map the summary message of a ``restic backup --json`` stream.

    When the stream ends without a summary, only ``path`` is populated.
    Messages after the summary are never decoded.
    """
    messages = (BackupSummary.from_message(value) for value in iter_json_messages(output))
    summary = next((message for message in messages if message.is_summary), None)
    if summary is None:
        log.debug("no summary message in backup output for %s", path)
        return SnapshotStats(path=path)
    return summary.to_snapshot_stats(path)


def extract_check_info(output: bytes | str) -> bool:
    for line in _as_text(output).splitlines():
        if line.strip() == CHECK_SUCCESS_MARKER:
            return True
    return False


def extract_cleanup_info(output: bytes | str) -> tuple[int, int]:
    """Return the kept and removed snapshot counts of ``restic forget --json``."""
    loaded = json.loads(_as_text(output), parse_constant=_reject_constant)
    if loaded is None:
        loaded = []
    if not isinstance(loaded, list):
        raise ValueError("forget output must be a JSON array")

    groups = [ForgetGroup.from_value(value, index) for index, value in enumerate(loaded)]
    keep = sum(len(group.keep) for group in groups)
    removed = sum(len(group.remove) for group in groups)
    return keep, removed


def extract_stats_info(output: bytes | str) -> str:
    loaded = json.loads(_as_text(output), parse_constant=_reject_constant)
    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ValueError("stats output must be a JSON object")

    stats = StatsContainer(total_size=_as_count(loaded.get("total_size"), "total_size"))
    return format_bytes(stats.total_size)
