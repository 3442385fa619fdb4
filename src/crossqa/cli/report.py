"""crossqa report — List the HTML reports written by past runs."""

from __future__ import annotations

import datetime
import webbrowser
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from crossqa.models import DEFAULT_REPORTS_DIR, EXTENT_REPORTS_SUBDIR, REPORT_PREFIX, RERUN_FILE

console = Console()


def list_reports(reports_dir: Path) -> list[Path]:
    """Return report files under *reports_dir*, newest first."""
    report_dir = reports_dir / EXTENT_REPORTS_SUBDIR
    if not report_dir.is_dir():
        return []
    files = [p for p in report_dir.glob(f"{REPORT_PREFIX}*.html") if p.is_file()]
    # the timestamp in the name sorts chronologically
    return sorted(files, key=lambda p: p.name, reverse=True)


def _failed_count(reports_dir: Path) -> int:
    rerun_file = reports_dir / RERUN_FILE
    if not rerun_file.is_file():
        return 0
    lines = rerun_file.read_text(encoding="utf-8").splitlines()
    return sum(1 for line in lines if line.strip() and not line.startswith("#"))


def report(
    reports_dir: Path = typer.Option(
        Path(DEFAULT_REPORTS_DIR),
        "--reports-dir",
        "-r",
        help="Root directory the run wrote its artifacts to.",
    ),
    open_report: bool = typer.Option(
        False,
        "--open",
        help="Open the latest report in the default browser.",
    ),
) -> None:
    """List generated reports, newest first."""
    reports = list_reports(reports_dir)
    if not reports:
        console.print(
            Panel(
                f"[yellow]No reports found under[/yellow] {reports_dir / EXTENT_REPORTS_SUBDIR}\n\n"
                "Run [bold]crossqa run[/bold] first.",
                title="[yellow]No Reports[/yellow]",
                border_style="yellow",
            )
        )
        raise typer.Exit(code=0)

    table = Table(title="CrossQA Reports", border_style="cyan")
    table.add_column("Report", style="bold")
    table.add_column("Written")
    table.add_column("Size", justify="right")

    for path in reports:
        stat = path.stat()
        written = datetime.datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d %H:%M:%S")
        table.add_row(path.name, written, f"{stat.st_size / 1024:.1f} KB")

    console.print()
    console.print(table)
    failed = _failed_count(reports_dir)
    if failed:
        console.print(f"[red]{failed} failed scenario(s) recorded in {reports_dir / RERUN_FILE}[/red]")
    console.print()

    if open_report:
        latest = reports[0]
        webbrowser.open(latest.resolve().as_uri())
        console.print(f"[dim]Opened: {latest}[/dim]")
