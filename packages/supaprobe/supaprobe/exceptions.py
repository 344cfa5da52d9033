"""supaprobe — Exception hierarchy.

All exceptions raised by supaprobe inherit from SupaprobeError so that callers
can catch the full family with a single except clause when needed.

Transport and backend errors are deliberately absent: the query adapter never
raises them, it returns them inside a failed ``Result``.

Hierarchy:
    SupaprobeError
    ├── ConfigurationError
    │   └── MissingCredentialError
    ├── QueryError
    │   ├── InvalidArgumentError
    │   └── GeometryError
    └── HarnessError
        ├── ScenarioRegistrationError
        └── RunStateError
"""

from __future__ import annotations

from typing import Any


class SupaprobeError(Exception):
    """Base exception for all supaprobe errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(SupaprobeError):
    """Settings could not be loaded or are inconsistent."""


class MissingCredentialError(ConfigurationError):
    """A required connection credential is absent."""

    def __init__(self, names: list[str]) -> None:
        super().__init__(
            "Missing required connection credential(s): " + ", ".join(names)
            + ". Set SUPAPROBE_CONNECTION__URL / SUPAPROBE_CONNECTION__API_KEY "
            "(or SUPABASE_URL / SUPABASE_API_KEY).",
            context={"missing": names},
        )
        self.names = names


# ---------------------------------------------------------------------------
# Query layer
# ---------------------------------------------------------------------------


class QueryError(SupaprobeError):
    """Base for errors detected locally while building a query."""


class InvalidArgumentError(QueryError):
    """A builder method received an argument outside its contract."""

    def __init__(self, argument: str, reason: str) -> None:
        super().__init__(
            f"Invalid argument '{argument}': {reason}",
            context={"argument": argument, "reason": reason},
        )
        self.argument = argument
        self.reason = reason


class GeometryError(QueryError):
    """A Point or Route could not be constructed from the given coordinates."""


# ---------------------------------------------------------------------------
# Harness
# ---------------------------------------------------------------------------


class HarnessError(SupaprobeError):
    """Base for scenario runner errors."""


class ScenarioRegistrationError(HarnessError):
    """A scenario could not be registered."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(
            f"Cannot register scenario '{name}': {reason}",
            context={"scenario": name, "reason": reason},
        )
        self.name = name


class RunStateError(HarnessError):
    """The runner was used in a state that does not allow the operation."""

    def __init__(self, operation: str, state: str) -> None:
        super().__init__(
            f"Cannot {operation} while runner is '{state}'",
            context={"operation": operation, "state": state},
        )
        self.operation = operation
        self.state = state
