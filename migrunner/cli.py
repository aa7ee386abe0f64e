"""CLI entry point for the migration runner.

Commands:
- migrunner migrate: Run all DbMigrator projects under a folder in parallel
- migrunner list: Show the migrators that would be run
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from migrunner import __version__
from migrunner.core.cancellation import cancel_on_signals
from migrunner.core.config import MigrunnerConfig, load_config
from migrunner.core.discovery import build_units, discover_migrators
from migrunner.core.errors import MigrunnerError
from migrunner.core.models import RunnableUnit, RunOutcome
from migrunner.core.orchestrator import Orchestrator

console = Console()

EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _resolve_units(
    working_directory: str | None,
    config_path: str | None,
    no_build: bool,
) -> tuple[MigrunnerConfig, list[RunnableUnit]]:
    """Load config and discover units, exiting with a usage error on failure."""
    root = Path(working_directory) if working_directory else Path.cwd()
    try:
        config = load_config(config_path, working_directory=root)
        projects = discover_migrators(root, config)
    except MigrunnerError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(EXIT_USAGE)

    return config, build_units(projects, config, no_build=no_build, root=root)


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Migrunner - run every DbMigrator project in a folder at once.

    Each migrator runs as its own process; their latest progress lines are
    shown in a live table until all of them finish.
    """
    pass


@main.command()
@click.argument("working_directory", required=False)
@click.option(
    "--no-build",
    is_flag=True,
    help="Skip build before running. Passes '--no-build' to dotnet run.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    envvar="MIGRUNNER_CONFIG",
    help="Path to a YAML config file (default: <working_directory>/.migrunner.yaml)",
)
@click.option("--strict", is_flag=True, help="Exit non-zero if any migrator exits non-zero")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging on stderr")
def migrate(
    working_directory: str | None,
    no_build: bool,
    config_path: str | None,
    strict: bool,
    verbose: bool,
) -> None:
    """Run all .DbMigrator projects in WORKING_DIRECTORY recursively.

    WORKING_DIRECTORY defaults to the current directory.
    """
    _configure_logging(verbose)
    config, units = _resolve_units(working_directory, config_path, no_build)

    orchestrator = Orchestrator(config, console=console)
    with cancel_on_signals() as cancel_event:
        result = orchestrator.run(units, cancel_event)

    if result.outcome == RunOutcome.LAUNCH_FAILED:
        console.print(f"[red]Error:[/red] {escape(str(result.launch_error))}")
        sys.exit(EXIT_FAILED)

    if result.outcome == RunOutcome.CANCELLED:
        console.print("[yellow]Cancelled - all migrators were stopped.[/yellow]")
        sys.exit(EXIT_CANCELLED)

    failed = result.failed_units
    if failed:
        style = "red" if strict else "yellow"
        console.print(f"[{style}]{len(failed)} migrator(s) exited with errors:[/{style}]")
        for name in failed:
            console.print(f"  - {escape(name)} (exit code {result.returncodes[name]})")
        if strict:
            sys.exit(EXIT_FAILED)


@main.command(name="list")
@click.argument("working_directory", required=False)
@click.option("--no-build", is_flag=True, help="Show commands with '--no-build'")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    envvar="MIGRUNNER_CONFIG",
    help="Path to a YAML config file (default: <working_directory>/.migrunner.yaml)",
)
def list_migrators(working_directory: str | None, no_build: bool, config_path: str | None) -> None:
    """List the migrators found in WORKING_DIRECTORY without running them."""
    _, units = _resolve_units(working_directory, config_path, no_build)

    if not units:
        console.print("[yellow]No db migrators found.[/yellow]")
        return

    table = Table(title=f"{len(units)} db migrator(s) found")
    table.add_column("Project", style="cyan")
    table.add_column("Directory", style="dim")
    table.add_column("Command")

    for unit in units:
        table.add_row(
            escape(unit.name),
            escape(str(unit.working_directory)),
            escape(" ".join(unit.command)),
        )

    console.print(table)


if __name__ == "__main__":
    main()
