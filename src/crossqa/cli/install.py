"""crossqa install — Install browser binaries for Playwright."""

from __future__ import annotations

import subprocess
import sys

import typer
from rich.console import Console
from rich.panel import Panel

console = Console()

_KNOWN_BROWSERS = ("chromium", "chrome", "firefox", "webkit")


def install(
    browsers: str = typer.Option(
        "chromium",
        "--browsers",
        "-b",
        help="Browsers to install (comma-separated). Options: chromium, chrome, firefox, webkit.",
    ),
    with_deps: bool = typer.Option(
        False,
        "--with-deps",
        help="Also install the system libraries the browsers need.",
    ),
) -> None:
    """Install the Playwright browsers web scenarios run on."""
    browser_list = [b.strip().lower() for b in browsers.split(",") if b.strip()]
    unknown = [b for b in browser_list if b not in _KNOWN_BROWSERS]
    if unknown:
        console.print(f"[red]Unknown browser(s): {', '.join(unknown)}[/red]")
        raise typer.Exit(code=2)

    cmd = [sys.executable, "-m", "playwright", "install"]
    if with_deps:
        cmd.append("--with-deps")
    cmd.extend(browser_list)

    try:
        with console.status(
            f"[bold blue]Installing {', '.join(browser_list)}...[/bold blue]",
            spinner="dots",
        ):
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=600)
    except subprocess.TimeoutExpired:
        console.print(
            Panel(
                "[red]Installation timed out after 10 minutes.[/red]",
                title="[red]Timeout[/red]",
                border_style="red",
            )
        )
        raise typer.Exit(code=3)
    except FileNotFoundError:
        console.print(
            Panel(
                "[red]Playwright is not installed.[/red]\n\nInstall it first:\n  pip install playwright",
                title="[red]Missing Dependency[/red]",
                border_style="red",
            )
        )
        raise typer.Exit(code=3)

    if result.returncode != 0:
        console.print(
            Panel(
                f"[red]Playwright install failed (exit code {result.returncode}).[/red]\n\n"
                f"{result.stderr.strip() if result.stderr else 'No error output.'}",
                title="[red]Installation Failed[/red]",
                border_style="red",
            )
        )
        raise typer.Exit(code=3)

    console.print(
        Panel(
            f"[green]Successfully installed: {', '.join(browser_list)}[/green]\n\n"
            "Run your features with:\n  [bold]crossqa run --tags @web[/bold]",
            title="[bold green]Installation Complete[/bold green]",
            border_style="green",
        )
    )
