"""Query adapter — Canonical data models.

Connection, Query and Result shapes validated through Pydantic v2.
Do not add I/O here: only data shapes and their invariants.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Error code reported when a ``single()`` query does not return exactly one row.
# Matches PostgREST's own code for the same condition.
CARDINALITY_ERROR_CODE = "PGRST116"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Operation(str, Enum):
    """Kind of request a Query describes."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    RPC = "rpc"


class FailureKind(str, Enum):
    """Where a failure originated.  Informational only."""

    VALIDATION = "validation"
    TRANSPORT = "transport"
    BACKEND = "backend"
    CARDINALITY = "cardinality"


# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------


class Connection(BaseModel):
    """Opaque handle to the remote service.  Immutable after construction."""

    model_config = ConfigDict(frozen=True)

    url: str
    api_key: str = Field(repr=False)
    schema_path: str = "/rest/v1"
    timeout_seconds: float = 30.0

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Endpoint URL must start with http:// or https://, got '{v}'")
        return v

    @field_validator("schema_path")
    @classmethod
    def normalise_schema_path(cls, v: str) -> str:
        return "/" + v.strip("/") if v.strip("/") else ""

    @property
    def rest_url(self) -> str:
        return f"{self.url}{self.schema_path}"

    def headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class Predicate(BaseModel):
    """One ``field <operator> value`` filter.  Predicates are AND-ed."""

    model_config = ConfigDict(frozen=True)

    field: str
    operator: str = "eq"
    value: Any = None

    def to_param(self) -> tuple[str, str]:
        """Render as a PostgREST query parameter."""
        if self.value is None:
            return self.field, "is.null"
        if isinstance(self.value, bool):
            return self.field, f"{self.operator}.{str(self.value).lower()}"
        return self.field, f"{self.operator}.{self.value}"


class Query(BaseModel):
    """Immutable description of one read/write request."""

    model_config = ConfigDict(frozen=True)

    collection: str
    operation: Operation
    columns: str | None = None
    predicates: tuple[Predicate, ...] = ()
    limit: int | None = None
    expect_single: bool = False
    payload: Any = None
    returning: bool = False
    affect_all: bool = False

    @property
    def is_destructive(self) -> bool:
        return self.operation in (Operation.UPDATE, Operation.DELETE)

    def describe(self) -> str:
        """Short human-readable form used in log records."""
        parts = [self.operation.value, self.collection]
        if self.predicates:
            parts.append(
                " AND ".join(f"{p.field} {p.operator} {p.value!r}" for p in self.predicates)
            )
        if self.limit is not None:
            parts.append(f"limit {self.limit}")
        if self.expect_single:
            parts.append("single")
        return " ".join(parts)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


class Failure(BaseModel):
    """Failure descriptor carried by an unsuccessful Result."""

    model_config = ConfigDict(frozen=True)

    message: str
    kind: FailureKind = FailureKind.BACKEND
    code: str | None = None
    details: str | None = None
    hint: str | None = None

    def __str__(self) -> str:
        text = self.message
        if self.code:
            text = f"[{self.code}] {text}"
        if self.details:
            text = f"{text} ({self.details})"
        return text


class Result(BaseModel):
    """Outcome of one executed Query or procedure call.

    Exactly one of ``data`` and ``error`` is populated.  ``data`` is a list
    of records, or a single record when the query expected exactly one row.
    """

    model_config = ConfigDict(frozen=True)

    data: list[dict[str, Any]] | dict[str, Any] | None = None
    error: Failure | None = None
    status_code: int | None = None

    @model_validator(mode="after")
    def exactly_one_branch(self) -> "Result":
        if (self.data is None) == (self.error is None):
            raise ValueError("Result must carry exactly one of 'data' or 'error'")
        return self

    @classmethod
    def success(
        cls, data: list[dict[str, Any]] | dict[str, Any], status_code: int | None = None
    ) -> "Result":
        return cls(data=data, status_code=status_code)

    @classmethod
    def failure(
        cls,
        message: str,
        *,
        kind: FailureKind = FailureKind.BACKEND,
        code: str | None = None,
        details: str | None = None,
        hint: str | None = None,
        status_code: int | None = None,
    ) -> "Result":
        return cls(
            error=Failure(message=message, kind=kind, code=code, details=details, hint=hint),
            status_code=status_code,
        )

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def records(self) -> list[dict[str, Any]]:
        """Success payload as a list (a single record becomes a one-item list)."""
        if self.data is None:
            return []
        if isinstance(self.data, dict):
            return [self.data]
        return self.data
