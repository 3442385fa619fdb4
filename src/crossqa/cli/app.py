"""CrossQA CLI — Main Typer entry point.

Registers all subcommands and provides --version / --verbose global options.
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console

from crossqa import __version__

TAGLINE = "One BDD harness for browsers and mobile apps."

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold cyan]CrossQA[/bold cyan] v{__version__}")
        console.print(f"  {TAGLINE}", style="dim")
        raise typer.Exit()


app = typer.Typer(
    name="crossqa",
    help=f"CrossQA: {TAGLINE}",
    rich_markup_mode="rich",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show CrossQA version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
) -> None:
    """CrossQA -- Gherkin scenarios against Playwright browsers and Appium devices."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s  %(message)s")


# ── Register subcommands ──────────────────────────────────────────────────

from crossqa.cli.config_cmd import config_app  # noqa: E402
from crossqa.cli.install import install  # noqa: E402
from crossqa.cli.report import report  # noqa: E402
from crossqa.cli.run import run  # noqa: E402

app.command(name="run", help="Run feature files with behave.")(run)
app.command(name="install", help="Install browser dependencies (Playwright).")(install)
app.command(name="report", help="List generated HTML reports.")(report)
app.add_typer(config_app, name="config", help="Inspect resolved configuration.")
