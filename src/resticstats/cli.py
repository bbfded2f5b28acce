from __future__ import annotations

import argparse
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys

from resticstats.config import load_config
from resticstats.extractor import extract_backup_info, extract_check_info, extract_cleanup_info, extract_stats_info
from resticstats.models import BackupOutput, RestoreOutput
from resticstats.output import read_backup_output, read_restore_output
from resticstats.report_service import (
    EXIT_INVALID_CONFIG,
    EXIT_RUNTIME_OR_CONFIG_ERROR,
    EXIT_SUCCESS,
    run_report,
)


LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="resticstats", description="Statistics from captured restic output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser("validate-config", help="Validate config")
    validate_parser.add_argument("--config", required=True, type=Path)

    report_parser = subparsers.add_parser("report", help="Build and write the output file of a session")
    report_parser.add_argument("--config", required=True, type=Path)
    report_parser.add_argument("--host", help="Report only one host by name")
    report_parser.add_argument("--fail-fast", action="store_true", help="Stop at the first unreadable output")
    report_parser.add_argument("--log-file", type=Path, default=None)
    report_parser.add_argument("--verbose", action="store_true")

    show_parser = subparsers.add_parser("show", help="Print a written output file")
    show_parser.add_argument("--file", required=True, type=Path)
    show_parser.add_argument("--kind", choices=["backup", "restore"], default="backup")

    extract_parser = subparsers.add_parser("extract", help="Parse one captured restic output")
    extract_parser.add_argument("source", choices=["backup", "check", "forget", "stats"])
    extract_parser.add_argument("--input", required=True, type=Path)
    extract_parser.add_argument("--path", default="", help="Backed up path, for backup output")

    return parser


def _configure_logging(verbose: bool, log_file: Path | None) -> None:
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


def cmd_validate(config_path: Path) -> int:
    try:
        config = load_config(config_path)
    except Exception as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    print(f"Valid config: {config_path} ({config.kind}, {len(config.hosts)} host(s))")
    print(f"  outputFile={config.output_file}")
    for host in config.hosts:
        print(f"  - host={host.hostname} snapshots={len(host.snapshots)}")
    if config.kind == "backup":
        repository = config.repository
        print(
            "  repository "
            f"check={repository.check_output or '-'} "
            f"forget={repository.forget_output or '-'} "
            f"stats={repository.stats_output or '-'}"
        )
    return EXIT_SUCCESS


def cmd_report(
    config_path: Path,
    hostname: str | None,
    fail_fast: bool,
    log_file: Path | None,
    verbose: bool,
) -> int:
    _configure_logging(verbose, log_file)
    exit_code, summary = run_report(
        config_path=config_path,
        hostname=hostname,
        continue_on_error=not fail_fast,
    )
    print(
        f"hosts={summary.hosts} snapshots={summary.snapshots} "
        f"missingSummaries={summary.missing_summaries} failed={summary.failed}"
    )
    return exit_code


def _print_backup_output(record: BackupOutput) -> None:
    for host in record.host_backup_stats:
        print(f"host: {host.hostname} phase={host.phase or '-'} duration={host.duration or '-'}")
        if host.error:
            print(f"  error: {host.error}")
        for snapshot in host.snapshots:
            files = snapshot.file_stats
            print(
                f"  - {snapshot.path} snapshot={snapshot.name or '-'} "
                f"uploaded={snapshot.uploaded or '-'} total={snapshot.total_size or '-'} "
                f"time={snapshot.processing_time or '-'} "
                f"files(new={files.new_files} modified={files.modified_files} "
                f"unmodified={files.unmodified_files} total={files.total_files})"
            )

    repository = record.repository_stats
    integrity = {None: "untested", True: "pass", False: "fail"}[repository.integrity]
    print(
        f"repository: integrity={integrity} size={repository.size or '-'} "
        f"snapshots={repository.snapshot_count} removed={repository.snapshots_removed_on_last_cleanup}"
    )


def _print_restore_output(record: RestoreOutput) -> None:
    for host in record.host_restore_stats:
        print(f"host: {host.hostname} phase={host.phase or '-'} duration={host.duration or '-'}")
        if host.error:
            print(f"  error: {host.error}")


def cmd_show(file_path: Path, kind: str) -> int:
    try:
        if kind == "restore":
            _print_restore_output(read_restore_output(file_path))
        else:
            _print_backup_output(read_backup_output(file_path))
    except (OSError, ValueError) as exc:
        print(f"Failed to read {file_path}: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_OR_CONFIG_ERROR
    return EXIT_SUCCESS


def cmd_extract(source: str, input_path: Path, path: str) -> int:
    try:
        output = input_path.read_bytes()
        if source == "backup":
            result: object = extract_backup_info(output, path).to_dict()
        elif source == "check":
            result = {"integrity": extract_check_info(output)}
        elif source == "forget":
            kept, removed = extract_cleanup_info(output)
            result = {"keep": kept, "remove": removed}
        else:
            result = {"size": extract_stats_info(output)}
    except (OSError, ValueError) as exc:
        print(f"Failed to parse {input_path}: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_OR_CONFIG_ERROR

    print(json.dumps(result, indent=2))
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "validate-config":
        return cmd_validate(args.config)
    if args.command == "report":
        return cmd_report(
            config_path=args.config,
            hostname=args.host,
            fail_fast=args.fail_fast,
            log_file=args.log_file,
            verbose=args.verbose,
        )
    if args.command == "show":
        return cmd_show(args.file, args.kind)
    if args.command == "extract":
        return cmd_extract(args.source, args.input, args.path)

    parser.print_help()
    return EXIT_RUNTIME_OR_CONFIG_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
