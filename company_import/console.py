#!/usr/bin/env python3
"""
Operator console for the company import pipeline.
Runs imports against local files and inspects job status without the API.
"""

import argparse
import sys
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .core.config import settings
from .core.logging_config import configure_logging
from .core.security import init_auth_tables
from .db.models import create_import_tables
from .domain.imports.errors import ImportNotFoundError
from .domain.imports.jobs import list_import_statuses
from .domain.imports.orchestrator import import_local_file
from .domain.imports.status_query import resolve_import_status

STATUS_STYLES = {
    "processing": "yellow",
    "completed": "green",
    "failed": "red",
}


class ImportConsole:
    """Renders import jobs with rich."""

    def __init__(self, console: Console = None):
        self.console = console or Console()

    def print_status(self, status: Dict[str, Any]) -> None:
        style = STATUS_STYLES.get(status["status"], "white")
        table = Table(title=f"Import {status['id']}")
        table.add_column("Field", style="cyan", no_wrap=True)
        table.add_column("Value", style="white")

        table.add_row("Status", f"[{style}]{status['status']}[/{style}]")
        table.add_row("File", status["file_name"])
        table.add_row("Started", str(status.get("start_time") or ""))
        table.add_row("Finished", str(status.get("end_time") or ""))
        table.add_row("Total", str(status["total_records"]))
        table.add_row("Processed", str(status["processed_records"]))
        table.add_row("Successful", str(status["successful_records"]))
        table.add_row("Failed", str(status["failed_records"]))
        self.console.print(table)

        if status.get("errors"):
            self.console.print(Panel(
                "\n".join(status["errors"]),
                title=f"Errors (last {len(status['errors'])})",
                border_style="red"
            ))

    def print_jobs(self, jobs: List[Dict[str, Any]]) -> None:
        if not jobs:
            self.console.print("[yellow]No import jobs yet.[/yellow]")
            return

        table = Table(title="Import Jobs")
        table.add_column("Id", style="dim")
        table.add_column("File", style="white")
        table.add_column("Status", style="white")
        table.add_column("Processed", justify="right")
        table.add_column("Failed", justify="right")
        table.add_column("Started", style="dim")

        for job in jobs:
            style = STATUS_STYLES.get(job["status"], "white")
            table.add_row(
                job["id"],
                job["file_name"],
                f"[{style}]{job['status']}[/{style}]",
                f"{job['processed_records']}/{job['total_records']}",
                str(job["failed_records"]),
                str(job.get("start_time") or ""),
            )
        self.console.print(table)

    def run_import(self, file_path: str, job_id: str = None) -> int:
        with self.console.status(f"[bold green]Importing {file_path}...", spinner="dots"):
            status = import_local_file(file_path, job_id=job_id)
        if status is None:
            self.console.print("[red]Import status record was removed while the job ran.[/red]")
            return 1
        self.print_status(status)
        return 0 if status["status"] == "completed" else 1

    def show_status(self, import_id: str) -> int:
        try:
            status = resolve_import_status(import_id)
        except ImportNotFoundError as e:
            self.console.print(f"[red]{e}[/red]")
            return 1
        self.print_status(status)
        return 0


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Company import console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s import companies.json            # Import a local file
  %(prog)s status 1700000000000             # Show one job
  %(prog)s jobs --limit 10                  # Most recent jobs
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Import a local .json or .csv file")
    import_parser.add_argument("file", help="Path to the file")
    import_parser.add_argument("--job-id", help="Job id (default: file name up to the first dot)")

    status_parser = subparsers.add_parser("status", help="Show the status of one import")
    status_parser.add_argument("import_id")

    jobs_parser = subparsers.add_parser("jobs", help="List recent import jobs")
    jobs_parser.add_argument("--limit", type=int, default=settings.import_list_limit)

    args = parser.parse_args(argv)

    configure_logging(settings.log_level)
    create_import_tables()
    init_auth_tables()

    import_console = ImportConsole()
    if args.command == "import":
        return import_console.run_import(args.file, job_id=args.job_id)
    if args.command == "status":
        return import_console.show_status(args.import_id)
    import_console.print_jobs(list_import_statuses(limit=args.limit))
    return 0


if __name__ == "__main__":
    sys.exit(main())
