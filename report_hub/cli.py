"""
Report Hub command line.

Usage:
    report-hub init-db
    report-hub import PATH [PATH ...]
    report-hub prune [--days N]
    report-hub baseline REPORT_ID

Commands:
    init-db     Create the report tables if they don't exist
    import      Ingest report files or directories of report files
    prune       Destroy reports older than the retention window
    baseline    Mark an inspect report as its host's baseline
"""

import argparse
import sys
from datetime import timedelta

import structlog

from report_hub.core.config import settings
from report_hub.core.database import SessionLocal, close_db, get_db_context, init_db
from report_hub.core.exceptions import ReportHubError
from report_hub.core.logging_config import configure_logging
from report_hub.schemas.report import ReportSummary
from report_hub.services.reports import ReportImporter, ReportService

logger = structlog.get_logger(__name__)


def cmd_init_db(args) -> int:
    init_db()
    print("Report tables ready.", file=sys.stderr)
    return 0


def cmd_import(args) -> int:
    stats = ReportImporter(SessionLocal).import_paths(args.paths)

    print("\nResults:", file=sys.stderr)
    print(f"  Imported: {stats.imported}", file=sys.stderr)
    print(f"  Duplicates: {stats.duplicates}", file=sys.stderr)
    print(f"  Failed: {stats.failed}", file=sys.stderr)
    for failure in stats.failures:
        print(f"    {failure}", file=sys.stderr)

    return 1 if stats.failed else 0


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def cmd_prune(args) -> int:
    days = args.days if args.days is not None else settings.reports.retention_days
    with get_db_context() as session:
        count = ReportService(session).prune(timedelta(days=days))
    print(f"Pruned {count} report(s) older than {days} day(s).", file=sys.stderr)
    return 0


def cmd_baseline(args) -> int:
    with get_db_context() as session:
        service = ReportService(session)
        report = service.get_report(args.report_id)
        previous = service.baseline_for(report.host)
        summary = ReportSummary.model_validate(service.mark_baseline(report))

        print(f"Report {summary.id} is now the baseline for {summary.host}.", file=sys.stderr)
        print(f"  Time: {summary.time.isoformat()}", file=sys.stderr)
        print(f"  Status: {summary.status.value}", file=sys.stderr)
        print(f"  Resources: {summary.total_resources:g}", file=sys.stderr)
        if previous is not None and previous.id != summary.id:
            print(f"  Replaced baseline: report {previous.id}", file=sys.stderr)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="report-hub",
        description="Ingest and manage agent run reports",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create the report tables")
    init_parser.set_defaults(func=cmd_init_db)

    import_parser = subparsers.add_parser("import", help="Ingest report files")
    import_parser.add_argument("paths", nargs="+", help="Report files or directories")
    import_parser.set_defaults(func=cmd_import)

    prune_parser = subparsers.add_parser("prune", help="Destroy old reports")
    prune_parser.add_argument(
        "--days",
        type=positive_int,
        default=None,
        help=f"Retention window in days (default: {settings.reports.retention_days})",
    )
    prune_parser.set_defaults(func=cmd_prune)

    baseline_parser = subparsers.add_parser("baseline", help="Mark an inspect report as baseline")
    baseline_parser.add_argument("report_id", type=int, help="ID of the inspect report")
    baseline_parser.set_defaults(func=cmd_baseline)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        if args.command != "init-db":
            init_db()
        return args.func(args)
    except ReportHubError as e:
        logger.error("Command failed", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        close_db()


if __name__ == "__main__":
    sys.exit(main())
