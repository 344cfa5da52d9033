"""Harness — Console report.

Each check is printed as a block bounded by start/end markers::

    --- Fetch Hotels in CO ---
    Success. Data:
    [ ... ]
    --- End Fetch Hotels in CO ---

followed, once the run is over, by a summary table and a completion line.
"""

from __future__ import annotations

from typing import Protocol

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from supaprobe.harness.scenario import Check, CheckStatus, Scenario, ScenarioOutcome, Summary


class Reporter(Protocol):
    def run_started(self, scenario_count: int) -> None: ...

    def scenario_started(self, scenario: Scenario) -> None: ...

    def check_recorded(self, scenario: Scenario, check: Check) -> None: ...

    def scenario_finished(self, outcome: ScenarioOutcome) -> None: ...

    def run_finished(self, summary: Summary) -> None: ...


class ConsoleReporter:
    """Human-readable report rendered with rich."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def run_started(self, scenario_count: int) -> None:
        self._console.print(f"Starting database smoke tests ({scenario_count} scenarios)...")

    def scenario_started(self, scenario: Scenario) -> None:
        title = scenario.description or scenario.name
        self._console.print(f"\n[bold]=== Running {escape(title)} ===[/bold]")

    def check_recorded(self, scenario: Scenario, check: Check) -> None:
        out = self._console
        out.print(f"\n--- {check.label} ---", markup=False, highlight=False)
        if check.result is None:
            out.print(f"[yellow]Skipped:[/yellow] {escape(check.skipped_reason or '')}")
        elif check.result.ok:
            out.print("[green]Success.[/green] Data:")
            out.print_json(data=check.result.data, default=str)
        else:
            out.print(f"[red]Error:[/red] {escape(str(check.result.error))}", highlight=False)
        if check.status is CheckStatus.FAILED:
            out.print(f"[bold red]UNEXPECTED:[/bold red] {escape(check.mismatch or '')}")
        out.print(f"--- End {check.label} ---", markup=False, highlight=False)

    def scenario_finished(self, outcome: ScenarioOutcome) -> None:
        if outcome.defect:
            self._console.print(
                f"[bold red]Scenario '{escape(outcome.name)}' crashed:[/bold red] {escape(outcome.defect)}"
            )

    def run_finished(self, summary: Summary) -> None:
        table = Table(title="Smoke Test Summary")
        table.add_column("Scenario", style="cyan")
        table.add_column("Checks", justify="right")
        table.add_column("Failed", justify="right")
        table.add_column("Skipped", justify="right")
        table.add_column("Result")

        for outcome in summary.outcomes:
            failed = sum(1 for c in outcome.checks if c.status is CheckStatus.FAILED)
            skipped = sum(1 for c in outcome.checks if c.status is CheckStatus.SKIPPED)
            if outcome.defect:
                verdict = "[red]crashed[/red]"
            elif outcome.passed:
                verdict = "[green]passed[/green]"
            else:
                verdict = "[red]failed[/red]"
            table.add_row(
                escape(outcome.name),
                str(len(outcome.checks)),
                str(failed),
                str(skipped),
                verdict,
            )

        self._console.print()
        self._console.print(table)
        colour = "green" if summary.passed else "red"
        self._console.print(
            f"[{colour}]All scenarios completed: {summary.passed_count}/{summary.total} passed.[/{colour}]"
        )
