"""Scenario harness — register scenarios, run them in order, report outcomes."""

from supaprobe.harness.report import ConsoleReporter, Reporter
from supaprobe.harness.runner import ScenarioRunner
from supaprobe.harness.scenario import (
    Check,
    CheckStatus,
    Expectation,
    ExpectationKind,
    RunState,
    Scenario,
    ScenarioOutcome,
    Summary,
    check,
    skip,
)

__all__ = [
    "Check",
    "CheckStatus",
    "ConsoleReporter",
    "Expectation",
    "ExpectationKind",
    "Reporter",
    "RunState",
    "Scenario",
    "ScenarioOutcome",
    "ScenarioRunner",
    "Summary",
    "check",
    "skip",
]
