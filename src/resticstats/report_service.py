from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging

from resticstats.config import HostConfig, RepositorySources, ReportConfig, load_config, select_hosts
from resticstats.extractor import extract_backup_info, extract_check_info, extract_cleanup_info, extract_stats_info
from resticstats.models import (
    PHASE_FAILED,
    PHASE_SUCCEEDED,
    BackupOutput,
    HostBackupStats,
    HostRestoreStats,
    RepositoryStats,
    RestoreOutput,
    SnapshotStats,
)
from resticstats.output import write_output


EXIT_SUCCESS = 0
EXIT_RUNTIME_OR_CONFIG_ERROR = 1
EXIT_PARTIAL_FAILURES = 2
EXIT_INVALID_CONFIG = 3


@dataclass(slots=True)
class ReportSummary:
    hosts: int = 0
    snapshots: int = 0
    missing_summaries: int = 0
    failed: int = 0
    partial_failures: bool = False

    def absorb(self, stats: SnapshotStats) -> None:
        self.snapshots += 1
        if not stats.name:
            self.missing_summaries += 1

    def record_failure(self) -> None:
        self.failed += 1
        self.partial_failures = True


def _backup_host_stats(
    host: HostConfig,
    summary: ReportSummary,
    continue_on_error: bool,
    log: logging.Logger,
) -> HostBackupStats:
    host_stats = HostBackupStats(hostname=host.hostname, duration=host.duration, error=host.error)
    errors: list[str] = [host.error] if host.error else []

    for source in host.snapshots:
        try:
            stats = extract_backup_info(source.output.read_bytes(), source.path)
        except Exception as exc:
            summary.record_failure()
            errors.append(f"{source.path}: {exc}")
            log.error("[%s] failed to read backup output for %s: %s", host.hostname, source.path, exc)
            if not continue_on_error:
                raise
            continue

        summary.absorb(stats)
        host_stats.snapshots.append(stats)
        if not stats.name:
            log.warning(
                "[%s] no summary message in backup output for %s (%s)",
                host.hostname,
                source.path,
                source.output,
            )
            continue
        log.info(
            "[%s] %s | snapshot=%s uploaded=%s total=%s time=%s",
            host.hostname,
            source.path,
            stats.name,
            stats.uploaded,
            stats.total_size,
            stats.processing_time,
        )

    host_stats.error = "; ".join(errors)
    if host.phase is not None:
        host_stats.phase = host.phase
    else:
        host_stats.phase = PHASE_FAILED if errors else PHASE_SUCCEEDED
    return host_stats


def _repository_stats(
    sources: RepositorySources,
    summary: ReportSummary,
    continue_on_error: bool,
    log: logging.Logger,
) -> RepositoryStats:
    stats = RepositoryStats()

    if sources.check_output is not None:
        try:
            stats.integrity = extract_check_info(sources.check_output.read_bytes())
        except OSError as exc:
            summary.record_failure()
            log.error("Failed to read check output %s: %s", sources.check_output, exc)
            if not continue_on_error:
                raise
        else:
            if not stats.integrity:
                log.warning("Repository integrity check did not report success")

    if sources.stats_output is not None:
        try:
            stats.size = extract_stats_info(sources.stats_output.read_bytes())
        except Exception as exc:
            summary.record_failure()
            log.error("Failed to read stats output %s: %s", sources.stats_output, exc)
            if not continue_on_error:
                raise

    if sources.forget_output is not None:
        try:
            kept, removed = extract_cleanup_info(sources.forget_output.read_bytes())
        except Exception as exc:
            summary.record_failure()
            log.error("Failed to read forget output %s: %s", sources.forget_output, exc)
            if not continue_on_error:
                raise
        else:
            stats.snapshot_count = kept
            stats.snapshots_removed_on_last_cleanup = removed

    log.info(
        "Repository | integrity=%s size=%s snapshots=%s removed=%s",
        stats.integrity,
        stats.size or "-",
        stats.snapshot_count,
        stats.snapshots_removed_on_last_cleanup,
    )
    return stats


def build_backup_output(
    config: ReportConfig,
    hostname: str | None = None,
    continue_on_error: bool = True,
    logger: logging.Logger | None = None,
) -> tuple[BackupOutput, ReportSummary]:
    log = logger or logging.getLogger("resticstats.report")
    summary = ReportSummary()
    output = BackupOutput()

    for host in select_hosts(config, hostname):
        output.host_backup_stats.append(_backup_host_stats(host, summary, continue_on_error, log))
        summary.hosts += 1

    output.repository_stats = _repository_stats(config.repository, summary, continue_on_error, log)
    return output, summary


def build_restore_output(config: ReportConfig, hostname: str | None = None) -> RestoreOutput:
    output = RestoreOutput()
    for host in select_hosts(config, hostname):
        output.host_restore_stats.append(
            HostRestoreStats(
                hostname=host.hostname,
                phase=host.phase if host.phase is not None else (PHASE_FAILED if host.error else PHASE_SUCCEEDED),
                duration=host.duration,
                error=host.error,
            )
        )
    return output


def run_report(
    config_path: Path,
    hostname: str | None = None,
    continue_on_error: bool = True,
    logger: logging.Logger | None = None,
) -> tuple[int, ReportSummary]:
    log = logger or logging.getLogger("resticstats.report")

    try:
        config = load_config(config_path)
        select_hosts(config, hostname)
    except Exception as exc:
        log.error("Config error: %s", exc)
        return EXIT_INVALID_CONFIG, ReportSummary(partial_failures=True)

    try:
        if config.kind == "restore":
            record: BackupOutput | RestoreOutput = build_restore_output(config, hostname)
            summary = ReportSummary(hosts=len(record.host_restore_stats))
        else:
            record, summary = build_backup_output(config, hostname, continue_on_error, log)
    except Exception as exc:
        log.error("Report aborted: %s", exc)
        return EXIT_RUNTIME_OR_CONFIG_ERROR, ReportSummary(partial_failures=True)

    try:
        write_output(record, config.output_file)
    except OSError as exc:
        log.error("Failed to write %s: %s", config.output_file, exc)
        return EXIT_RUNTIME_OR_CONFIG_ERROR, summary

    log.info(
        "Wrote %s report for %s host(s) to %s",
        config.kind,
        summary.hosts,
        config.output_file,
    )
    exit_code = EXIT_PARTIAL_FAILURES if summary.partial_failures else EXIT_SUCCESS
    return exit_code, summary
