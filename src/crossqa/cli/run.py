"""crossqa run — Execute feature files through behave.

Builds a behave command line from the CLI options: every ``-D key=value``
becomes behave userdata (and so a process property for the configuration
registry), the rerun formatter records failed scenarios under the reports
directory, JUnit XML and cucumber JSON land next to the HTML report, and
behave's exit code is returned unchanged.

With ``--parallel N`` the ``@mobile`` feature files are split across N
behave worker processes while everything else runs in one sequential web
run, so feature-scoped browsers are never shared between processes.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from crossqa.models import DEFAULT_REPORTS_DIR, JSON_REPORT, JUNIT_SUBDIR, RERUN_FILE

console = Console(stderr=True)

logger = logging.getLogger("crossqa.cli.run")

MOBILE_TAG = "@mobile"


def parse_defines(defines: list[str]) -> dict[str, str]:
    """Parse ``key=value`` strings; a bare ``key`` means ``key=true``."""
    parsed: dict[str, str] = {}
    for item in defines:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not key:
            raise typer.BadParameter(f"Invalid define: {item!r} (expected key=value)")
        parsed[key] = value.strip() if sep else "true"
    return parsed


def rerun_path(reports_dir: Path, worker: str | None = None) -> Path:
    if worker is None:
        return reports_dir / RERUN_FILE
    return reports_dir / f"{Path(RERUN_FILE).stem}_{worker}.txt"


def json_report_path(reports_dir: Path, worker: str | None = None) -> Path:
    if worker is None:
        return reports_dir / JSON_REPORT
    return reports_dir / f"{Path(JSON_REPORT).stem}_{worker}.json"


def build_behave_args(
    features: list[str],
    userdata: dict[str, str],
    tags: str | None,
    reports_dir: Path,
    rerun_failed: bool = False,
    junit: bool = True,
    worker: str | None = None,
    extra_tags: str | None = None,
) -> list[str]:
    """Assemble the behave argument list (without the interpreter prefix).

    *worker* names a parallel worker: its rerun file, JSON report and HTML
    report get the worker id as suffix. *extra_tags* is a second ``--tags``
    option, which behave combines with *tags* using ``and``.
    """
    args: list[str] = []

    if rerun_failed:
        args.append(f"@{rerun_path(reports_dir)}")
    else:
        args.extend(features)

    for key, value in userdata.items():
        args.extend(["-D", f"{key}={value}"])
    args.extend(["-D", f"reportsDir={reports_dir}"])
    if worker is not None:
        args.extend(["-D", f"workerId={worker}"])

    if tags:
        args.extend(["--tags", tags])
    if extra_tags:
        args.extend(["--tags", extra_tags])

    if junit:
        args.extend(["--junit", "--junit-directory", str(reports_dir / JUNIT_SUBDIR)])

    # each outfile pairs with the formatter before it; pretty goes to stdout
    args.extend(["-f", "rerun", "-o", str(rerun_path(reports_dir, worker))])
    args.extend(["-f", "json.pretty", "-o", str(json_report_path(reports_dir, worker))])
    args.extend(["-f", "pretty"])
    return args


# ---------------------------------------------------------------------------
# Parallel mobile runs
# ---------------------------------------------------------------------------

def discover_features(paths: list[str]) -> list[Path]:
    """Expand files and directories into a sorted list of ``.feature`` files."""
    found: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            found.extend(sorted(path.rglob("*.feature")))
        elif path.is_file() and path.suffix == ".feature":
            found.append(path)
    return found


def has_mobile_tag(feature: Path) -> bool:
    """True when any tag line of *feature* carries ``@mobile``."""
    for line in feature.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if stripped.startswith("@") and MOBILE_TAG in stripped.split():
            return True
    return False


def split_mobile_features(paths: list[str], workers: int) -> list[list[str]]:
    """Deal the ``@mobile`` feature files round-robin into at most *workers* shards."""
    mobile = [str(p) for p in discover_features(paths) if has_mobile_tag(p)]
    shards = [mobile[i::workers] for i in range(workers)]
    return [shard for shard in shards if shard]


def merge_rerun_files(reports_dir: Path, workers: int) -> int:
    """Fold the worker rerun files into the main one; returns the failure count."""
    lines: list[str] = []
    parts = [rerun_path(reports_dir)] + [rerun_path(reports_dir, str(i)) for i in range(1, workers + 1)]
    for part in parts:
        if not part.is_file():
            continue
        for line in part.read_text(encoding="utf-8").splitlines():
            if line.strip() and not line.startswith("#"):
                lines.append(line.strip())
        if part != parts[0]:
            part.unlink()

    parts[0].write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
    return len(lines)


def _run_behave(args: list[str]) -> int:
    cmd = [sys.executable, "-m", "behave", *args]
    logger.debug("Running: %s", " ".join(cmd))
    return subprocess.run(cmd).returncode


def run_parallel(
    features: list[str],
    userdata: dict[str, str],
    tags: str | None,
    reports_dir: Path,
    workers: int,
    junit: bool = True,
) -> int:
    """Run the web scenarios in one process and ``@mobile`` shards in *workers* more.

    Returns the worst exit code of all runs.
    """
    shards = split_mobile_features(features, workers)
    jobs = {
        "web": build_behave_args(
            features, userdata, tags, reports_dir, junit=junit, extra_tags=f"not {MOBILE_TAG}"
        ),
    }
    for index, shard in enumerate(shards, start=1):
        jobs[f"mobile-{index}"] = build_behave_args(
            shard, userdata, tags, reports_dir, junit=junit, worker=str(index), extra_tags=MOBILE_TAG
        )

    console.print(
        f"[dim]Running web scenarios sequentially and {sum(len(s) for s in shards)} mobile "
        f"feature(s) across {len(shards)} worker(s)[/dim]"
    )

    worst = 0
    with ThreadPoolExecutor(max_workers=len(jobs)) as executor:
        futures = {executor.submit(_run_behave, args): name for name, args in jobs.items()}
        for future in as_completed(futures):
            returncode = future.result()
            logger.info("Worker %s finished with exit code %d", futures[future], returncode)
            worst = max(worst, returncode)

    merge_rerun_files(reports_dir, len(shards))
    return worst


def run(
    features: list[str] = typer.Argument(
        None,
        help="Feature files or directories (default: features/).",
    ),
    env: str | None = typer.Option(
        None,
        "--env",
        "-e",
        help="Environment name; loads config/<env>.properties over the defaults.",
    ),
    tags: str | None = typer.Option(
        None,
        "--tags",
        "-t",
        help="Tag expression passed to behave (e.g. '@web and not @slow').",
    ),
    define: list[str] = typer.Option(
        None,
        "--define",
        "-D",
        help="Process property key=value (repeatable). Overrides config files.",
    ),
    config_dir: Path | None = typer.Option(
        None,
        "--config-dir",
        help="Directory holding config.properties and environment files.",
    ),
    reports_dir: Path = typer.Option(
        Path(DEFAULT_REPORTS_DIR),
        "--reports-dir",
        "-r",
        help="Root directory for reports, screenshots and the rerun file.",
    ),
    rerun_failed: bool = typer.Option(
        False,
        "--rerun-failed",
        help="Run only the scenarios recorded as failed by the previous run.",
    ),
    parallel: int = typer.Option(
        1,
        "--parallel",
        "-p",
        min=1,
        help="Split @mobile features across N worker processes; web scenarios stay sequential.",
    ),
    junit: bool = typer.Option(
        True,
        "--junit/--no-junit",
        help="Write JUnit XML (for CI integration) under <reports-dir>/junit-reports.",
    ),
) -> None:
    """Run BDD scenarios and exit with behave's status code."""
    try:
        userdata = parse_defines(define or [])
    except typer.BadParameter as exc:
        console.print(Panel(f"[red]{exc}[/red]", title="[red]Invalid Argument[/red]", border_style="red"))
        raise typer.Exit(code=2)

    if env:
        userdata["env"] = env
    if config_dir is not None:
        userdata["configDir"] = str(config_dir)

    rerun_file = rerun_path(reports_dir)
    if rerun_failed and not (rerun_file.is_file() and rerun_file.read_text(encoding="utf-8").strip()):
        console.print(f"[green]No failed scenarios recorded in {rerun_file}.[/green]")
        raise typer.Exit(code=0)

    reports_dir.mkdir(parents=True, exist_ok=True)
    paths = features or ["features"]

    try:
        if parallel > 1 and not rerun_failed:
            returncode = run_parallel(paths, userdata, tags, reports_dir, parallel, junit=junit)
        else:
            if parallel > 1:
                console.print("[yellow]--parallel is ignored with --rerun-failed; replaying sequentially.[/yellow]")
            returncode = _run_behave(build_behave_args(paths, userdata, tags, reports_dir, rerun_failed, junit=junit))
    except FileNotFoundError:
        console.print(
            Panel(
                "[red]behave could not be started.[/red]\n\nInstall it first:\n  pip install behave",
                title="[red]Missing Dependency[/red]",
                border_style="red",
            )
        )
        raise typer.Exit(code=3)

    if returncode == 0:
        console.print("[bold green]All scenarios passed.[/bold green]")
    else:
        console.print(
            f"[bold red]Run failed (exit {returncode}).[/bold red] "
            f"Failed scenarios: [bold]{rerun_file}[/bold]"
        )
    if junit:
        console.print(f"[dim]JUnit XML written to: {reports_dir / JUNIT_SUBDIR}[/dim]")
    raise typer.Exit(code=returncode)
