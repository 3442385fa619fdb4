"""crossqa config — Inspect the resolved configuration registry."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from crossqa.cli.run import parse_defines
from crossqa.config import DEFAULT_CONFIG_DIR, ConfigRegistry

console = Console()

config_app = typer.Typer(
    name="config",
    help="Inspect resolved CrossQA configuration.",
    no_args_is_help=True,
)


@config_app.command(name="show")
def config_show(
    env: str | None = typer.Option(
        None,
        "--env",
        "-e",
        help="Environment overlay to resolve (config/<env>.properties).",
    ),
    config_dir: Path = typer.Option(
        Path(DEFAULT_CONFIG_DIR),
        "--config-dir",
        "-d",
        help="Directory holding config.properties and environment files.",
    ),
    define: list[str] = typer.Option(
        None,
        "--define",
        "-D",
        help="Process property key=value (repeatable).",
    ),
) -> None:
    """Show every resolved key, and the files it was loaded from."""
    properties = parse_defines(define or [])
    if env:
        properties["env"] = env

    registry = ConfigRegistry(config_dir, properties=properties)

    table = Table(title="CrossQA Configuration", border_style="cyan")
    table.add_column("Key", style="bold")
    table.add_column("Value")

    for key, value in sorted(registry.as_dict().items()):
        table.add_row(key, value)

    console.print()
    console.print(table)
    if registry.sources:
        console.print("[dim]Loaded from: " + ", ".join(str(s) for s in registry.sources) + "[/dim]")
    else:
        console.print(f"[yellow]No configuration files found in {config_dir}[/yellow]")
    console.print()
