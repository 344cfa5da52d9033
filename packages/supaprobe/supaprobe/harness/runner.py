"""Harness — Sequential scenario runner.

State transitions (one run per runner):
    not_started -> running -> completed

Scenarios execute strictly in registration order, one at a time, because a
later scenario may depend on rows an earlier one created or removed.  An
exception escaping a scenario body is recorded as that scenario's defect and
the run moves on to the next scenario.
"""

from __future__ import annotations

import time
from typing import Callable

from supaprobe.client import QueryClient
from supaprobe.exceptions import RunStateError, ScenarioRegistrationError
from supaprobe.harness.report import ConsoleReporter, Reporter
from supaprobe.harness.scenario import (
    Check,
    RunState,
    Scenario,
    ScenarioBody,
    ScenarioOutcome,
    Summary,
    check,
)
from supaprobe.logging import bind_scenario_context, clear_scenario_context, get_logger
from supaprobe.models import Result

log = get_logger(__name__)


class ScenarioRunner:
    """Registers scenarios and runs each of them exactly once.

    Usage::

        runner = ScenarioRunner()

        @runner.scenario("basic_fetches")
        async def basic_fetches(client):
            yield check("Fetch First 5 Hotels", await client.select("hotels").limit(5).execute())

        summary = await runner.run_all(client)
    """

    def __init__(self, reporter: Reporter | None = None) -> None:
        self._reporter: Reporter = reporter if reporter is not None else ConsoleReporter()
        self._scenarios: list[Scenario] = []
        self._state = RunState.NOT_STARTED

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def scenarios(self) -> list[Scenario]:
        return list(self._scenarios)

    @property
    def names(self) -> list[str]:
        return [s.name for s in self._scenarios]

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, name: str, body: ScenarioBody, description: str = "") -> Scenario:
        if self._state is not RunState.NOT_STARTED:
            raise RunStateError("register a scenario", self._state.value)
        if not name or not name.strip():
            raise ScenarioRegistrationError(name, "name must be non-empty")
        if not callable(body):
            raise ScenarioRegistrationError(name, "body must be callable")
        if name in self.names:
            raise ScenarioRegistrationError(name, "a scenario with this name already exists")
        scenario = Scenario(name=name, body=body, description=description)
        self._scenarios.append(scenario)
        return scenario

    def scenario(
        self, name: str, description: str = ""
    ) -> Callable[[ScenarioBody], ScenarioBody]:
        """Decorator form of :meth:`register`."""

        def decorator(body: ScenarioBody) -> ScenarioBody:
            self.register(name, body, description)
            return body

        return decorator

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def run_all(self, client: QueryClient) -> Summary:
        if self._state is not RunState.NOT_STARTED:
            raise RunStateError("run", self._state.value)
        self._state = RunState.RUNNING
        summary = Summary(state=RunState.RUNNING)
        self._reporter.run_started(len(self._scenarios))
        log.info("run_started", scenario_count=len(self._scenarios))

        try:
            for scenario in self._scenarios:
                summary.outcomes.append(await self._run_one(scenario, client))
        finally:
            clear_scenario_context()
            self._state = summary.state = RunState.COMPLETED

        log.info(
            "run_finished",
            total=summary.total,
            passed=summary.passed_count,
            failed=summary.failed_count,
        )
        self._reporter.run_finished(summary)
        return summary

    async def _run_one(self, scenario: Scenario, client: QueryClient) -> ScenarioOutcome:
        bind_scenario_context(scenario=scenario.name)
        outcome = ScenarioOutcome(name=scenario.name)
        self._reporter.scenario_started(scenario)
        log.info("scenario_started")

        try:
            produced = scenario.body(client)
            if hasattr(produced, "__aiter__"):
                async for item in produced:
                    self._record(scenario, outcome, item)
            else:
                # Plain coroutine bodies return their checks all at once.
                for item in await produced or ():
                    self._record(scenario, outcome, item)
        except Exception as exc:
            outcome.defect = f"{type(exc).__name__}: {exc}"
            log.exception("scenario_defect", error=outcome.defect)

        outcome.finished_at = time.time()
        log.info("scenario_finished", passed=outcome.passed, checks=len(outcome.checks))
        self._reporter.scenario_finished(outcome)
        clear_scenario_context()
        return outcome

    def _record(self, scenario: Scenario, outcome: ScenarioOutcome, produced: object) -> None:
        item = _as_check(produced)
        bind_scenario_context(check=item.label)
        outcome.checks.append(item)
        log.info(
            "check_recorded",
            status=item.status.value,
            error=str(item.result.error) if item.result and item.result.error else None,
        )
        self._reporter.check_recorded(scenario, item)


def _as_check(produced: object) -> Check:
    """Accept a Check or a bare ``(label, Result)`` pair from a scenario body."""
    if isinstance(produced, Check):
        return produced
    if (
        isinstance(produced, tuple)
        and len(produced) == 2
        and isinstance(produced[0], str)
        and isinstance(produced[1], Result)
    ):
        return check(produced[0], produced[1])
    raise TypeError(
        f"scenario bodies must yield Check or (label, Result), got {type(produced).__name__}"
    )
