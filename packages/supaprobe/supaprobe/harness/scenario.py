"""Harness — Scenario, Check and outcome data shapes.

A scenario body is an async generator that receives the query client and
yields one :class:`Check` per adapter call::

    async def fetch_first_hotels(client: QueryClient) -> AsyncIterator[Check]:
        result = await client.select("hotels").limit(5).execute()
        yield check("Fetch First 5 Hotels", result)

A plain coroutine may instead return its checks (or ``(label, Result)`` pairs)
as a list once it is done.

Values one step needs from an earlier step (a generated id, say) are passed
explicitly as arguments between step functions, never through shared state.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, Iterable

from supaprobe.models import Result

if TYPE_CHECKING:
    from supaprobe.client import QueryClient


class ExpectationKind(str, Enum):
    SUCCESS = "success"
    SUCCESS_EMPTY = "success_empty"
    FAILURE = "failure"


class RunState(str, Enum):
    """Runner lifecycle: not_started -> running -> completed, once."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"


class CheckStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Expectation:
    """What a check's Result must look like for the check to pass."""

    kind: ExpectationKind = ExpectationKind.SUCCESS
    message_contains: str | None = None

    @classmethod
    def success(cls) -> "Expectation":
        return cls(ExpectationKind.SUCCESS)

    @classmethod
    def empty(cls) -> "Expectation":
        return cls(ExpectationKind.SUCCESS_EMPTY)

    @classmethod
    def failure(cls, message_contains: str | None = None) -> "Expectation":
        return cls(ExpectationKind.FAILURE, message_contains)

    def evaluate(self, result: Result) -> str | None:
        """Return why *result* does not meet this expectation, or None."""
        if self.kind is ExpectationKind.FAILURE:
            if result.ok:
                return "expected an error but the call succeeded"
            if self.message_contains:
                text = " ".join(
                    part or ""
                    for part in (result.error.message, result.error.details, result.error.hint)  # type: ignore[union-attr]
                )
                if self.message_contains.lower() not in text.lower():
                    return f"error does not mention '{self.message_contains}'"
            return None
        if not result.ok:
            return f"unexpected error: {result.error}"
        if self.kind is ExpectationKind.SUCCESS_EMPTY and result.records:
            return f"expected no records, got {len(result.records)}"
        return None


@dataclass(frozen=True)
class Check:
    """One labelled adapter call inside a scenario."""

    label: str
    result: Result | None
    expectation: Expectation = field(default_factory=Expectation.success)
    skipped_reason: str | None = None

    @property
    def mismatch(self) -> str | None:
        if self.result is None:
            return None
        return self.expectation.evaluate(self.result)

    @property
    def status(self) -> CheckStatus:
        if self.result is None:
            return CheckStatus.SKIPPED
        return CheckStatus.FAILED if self.mismatch else CheckStatus.PASSED


def check(label: str, result: Result, expect: Expectation | None = None) -> Check:
    return Check(label=label, result=result, expectation=expect or Expectation.success())


def skip(label: str, reason: str) -> Check:
    return Check(label=label, result=None, skipped_reason=reason)


ScenarioBody = Callable[
    ["QueryClient"],
    AsyncIterator[Check] | Awaitable[Iterable[Check] | None],
]


@dataclass(frozen=True)
class Scenario:
    name: str
    body: ScenarioBody
    description: str = ""


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass
class ScenarioOutcome:
    """Everything one scenario produced during a run."""

    name: str
    checks: list[Check] = field(default_factory=list)
    defect: str | None = None
    started_at: float = field(default_factory=time.time)
    finished_at: float | None = None

    @property
    def passed(self) -> bool:
        return self.defect is None and all(
            c.status is not CheckStatus.FAILED for c in self.checks
        )

    @property
    def duration(self) -> float:
        if self.finished_at is None:
            return 0.0
        return self.finished_at - self.started_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "defect": self.defect,
            "duration": round(self.duration, 3),
            "checks": [
                {
                    "label": c.label,
                    "status": c.status.value,
                    "expected": c.expectation.kind.value,
                    "error": str(c.result.error) if c.result and c.result.error else None,
                    "mismatch": c.mismatch,
                    "skipped_reason": c.skipped_reason,
                }
                for c in self.checks
            ],
        }


@dataclass
class Summary:
    """Aggregate of a completed run."""

    outcomes: list[ScenarioOutcome] = field(default_factory=list)
    state: RunState = RunState.NOT_STARTED

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def passed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.passed)

    @property
    def failed_count(self) -> int:
        return self.total - self.passed_count

    @property
    def passed(self) -> bool:
        return self.failed_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed_count,
            "failed": self.failed_count,
            "ok": self.passed,
            "state": self.state.value,
            "scenarios": [o.to_dict() for o in self.outcomes],
        }
