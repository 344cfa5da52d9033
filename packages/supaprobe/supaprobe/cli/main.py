"""supaprobe CLI — Entry point.

Usage:
    supaprobe run [--config FILE]
    supaprobe scenarios

Connection credentials come from the environment (``SUPAPROBE_CONNECTION__URL``
and ``SUPAPROBE_CONNECTION__API_KEY``, or ``SUPABASE_URL`` and
``SUPABASE_API_KEY``) or from the config file.

Exit codes: 0 all scenarios passed, 1 a scenario failed or the run aborted,
2 startup error (missing credential, unreadable config).
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from supaprobe.client import QueryClient
from supaprobe.config import Settings
from supaprobe.exceptions import ConfigurationError
from supaprobe.harness import ConsoleReporter, ScenarioRunner, Summary
from supaprobe.logging import configure_logging, get_logger
from supaprobe.models import Connection
from supaprobe.scenarios import register_hotel_scenarios

app = typer.Typer(
    name="supaprobe",
    help="supaprobe — smoke tests for a hosted PostgREST database.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

console = Console()
log = get_logger(__name__)


def _make_client(connection: Connection) -> QueryClient:
    return QueryClient(connection)


async def _run(connection: Connection, settings: Settings) -> Summary:
    runner = register_hotel_scenarios(
        ScenarioRunner(ConsoleReporter(console)), settings.procedures
    )
    async with _make_client(connection) as client:
        return await runner.run_all(client)


@app.callback()
def main_callback() -> None:
    pass


@app.command("run")
def run(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML settings file (overrides ~/.supaprobe/config.yaml)."
    ),
) -> None:
    """Run every registered scenario once, in order."""
    try:
        settings = Settings.load(config)
        connection = settings.require_connection()
    except ConfigurationError as exc:
        log.error("startup_failed", error=exc.message, **exc.context)
        console.print(f"[red]Startup error: {escape(exc.message)}[/red]")
        raise typer.Exit(2)

    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )

    try:
        summary = asyncio.run(_run(connection, settings))
    except Exception as exc:
        log.exception("run_aborted", error=str(exc))
        console.print(f"[red]Unhandled error during tests: {escape(str(exc))}[/red]")
        raise typer.Exit(1)

    raise typer.Exit(0 if summary.passed else 1)


@app.command("scenarios")
def list_scenarios() -> None:
    """List the registered scenarios in execution order."""
    runner = register_hotel_scenarios(ScenarioRunner(ConsoleReporter(console)))

    table = Table(title="Registered Scenarios")
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    for index, scenario in enumerate(runner.scenarios, start=1):
        table.add_row(str(index), scenario.name, scenario.description)
    console.print(table)


if __name__ == "__main__":
    app()
