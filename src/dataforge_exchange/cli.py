"""
CLI Module - Command line front end for import/export jobs

Examples:
    dataforge-exchange import --db sqlite --target app.db --table Orders orders.csv
    dataforge-exchange export --db sqlserver --target "Driver={...};Server=...;Database=Sales" \\
        --schema dbo --table Orders --format sql orders.sql
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config.settings import load_settings
from .core.job import ExportJob, ImportJob, JobParameters
from .core.summary import JobStatus, JobSummary
from .database.connections import database_name_from, open_connection
from .errors import describe_error
from .formats import ExchangeFormat
from .utils.logger import setup_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dataforge-exchange",
        description="Import files into a table or export a table to a file.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="YAML settings file")

    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (("import", "Load a file into an existing table"),
                            ("export", "Write a table to a file")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("file", help="File to read (import) or write (export)")
        cmd.add_argument("--db", default="sqlite", help="Database type: sqlite or sqlserver")
        cmd.add_argument("--target", required=True,
                         help="SQLite database path or SQL Server ODBC connection string")
        cmd.add_argument("--schema", default=None, help="Target schema (default: dbo on SQL Server)")
        cmd.add_argument("--table", required=True, help="Target table")
        cmd.add_argument("--format", default=None,
                         help="csv, spreadsheet, json, xml or sql (default: from the file extension)")
        cmd.add_argument("--encoding", default=None, help="UTF-8, UTF-16, ASCII, Windows-1252 or a codec name")
        cmd.add_argument("--delimiter", default=None, help=r"CSV delimiter: , ; \t |")
        cmd.add_argument("--no-headers", action="store_true", help="No header row in the file")

        if name == "import":
            cmd.add_argument("--truncate", action="store_true", help="Delete existing rows first")
            cmd.add_argument("--skip-errors", action="store_true",
                             help="Pass unresolvable cells on as NULL instead of stopping")
            cmd.add_argument("--validate", action="store_true",
                             help="Check every row before writing anything")
            cmd.add_argument("--batch-size", type=int, default=None, help="Rows per batch (1-10000)")

    return parser


def _print_summary(summary: JobSummary) -> None:
    print()
    print("=" * 60)
    print(f"{summary.kind.capitalize()} {summary.status.value}")
    print("=" * 60)
    print(summary.format_report())
    print("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point. Returns the process exit code."""
    args = _build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError) as e:
        print(f"Invalid settings: {e}", file=sys.stderr)
        return 2

    setup_logging(settings.log_level, settings.log_file)

    fmt = args.format or args.file.rsplit(".", 1)[-1]
    try:
        params = JobParameters(
            format=ExchangeFormat.from_name(fmt),
            file_path=args.file,
            target_table=args.table,
            target_schema=args.schema,
            include_headers=settings.include_headers and not args.no_headers,
            encoding=args.encoding or settings.encoding,
            delimiter=args.delimiter or settings.delimiter,
            truncate_before_import=getattr(args, "truncate", False),
            skip_row_errors=getattr(args, "skip_errors", False),
            validate_before_import=getattr(args, "validate", False),
            batch_size=getattr(args, "batch_size", None) or settings.batch_size,
        ).validate()
    except ValueError as e:
        print(f"Invalid parameters: {e}", file=sys.stderr)
        return 2

    print("=" * 60)
    print(f"Starting {args.command}: {params.file_path} <-> {params.qualified_table}")
    print("=" * 60)

    try:
        connection = open_connection(args.db, args.target)
    except Exception as e:
        info = describe_error(e)
        print(info.format_full(), file=sys.stderr)
        return 1

    job_class = ImportJob if args.command == "import" else ExportJob
    try:
        job = job_class(
            connection, args.db, params,
            settings=settings,
            db_name=database_name_from(args.db, args.target),
        )
        summary = job.run()
    finally:
        connection.close()

    _print_summary(summary)
    if summary.status == JobStatus.FAILED and summary.error:
        suggestion = describe_error(Exception(summary.error)).suggestion
        if suggestion:
            print(f"Suggestion: {suggestion}")
    return 0 if summary.status == JobStatus.COMPLETED else 1


if __name__ == "__main__":
    sys.exit(main())
