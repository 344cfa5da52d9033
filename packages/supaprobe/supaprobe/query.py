"""Query adapter — Chainable query builder.

Every builder method returns a *new* builder wrapping an updated, frozen
:class:`~supaprobe.models.Query`, so a partially built query can be reused
as a template without aliasing surprises::

    hotels = client.select("hotels", ["name", "city", "state"])
    in_co = await hotels.eq("state", "CO").execute()
    one = await client.select("hotels").eq("id", hotel_id).single().execute()

Argument errors (non-positive limit, empty field names) raise
:class:`InvalidArgumentError` immediately.  Query-level validation that needs
the whole query (e.g. an unfiltered delete) happens in ``execute()`` and is
reported as a failed Result, never as an exception.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

from supaprobe.exceptions import InvalidArgumentError
from supaprobe.models import Operation, Predicate, Query, Result

if TYPE_CHECKING:
    from supaprobe.client import QueryClient


def normalise_columns(fields: str | Sequence[str] | None) -> str:
    """Render a projection as a PostgREST ``select`` value.

    Whitespace outside double quotes is dropped, so
    ``"*, rooms(hotel_id, hotels(name))"`` becomes
    ``"*,rooms(hotel_id,hotels(name))"``.
    """
    if fields is None:
        return "*"
    if not isinstance(fields, str):
        fields = ",".join(str(f).strip() for f in fields)
    out: list[str] = []
    quoted = False
    for ch in fields:
        if ch == '"':
            quoted = not quoted
        if ch.isspace() and not quoted:
            continue
        out.append(ch)
    return "".join(out) or "*"


def require_name(argument: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(argument, "must be a non-empty string")
    return value.strip()


class QueryBuilder:
    """Immutable, chainable wrapper around a :class:`Query`."""

    def __init__(self, client: "QueryClient", query: Query) -> None:
        self._client = client
        self._query = query

    @property
    def query(self) -> Query:
        return self._query

    def _with(self, **changes: Any) -> "QueryBuilder":
        return QueryBuilder(self._client, self._query.model_copy(update=changes))

    def __repr__(self) -> str:
        return f"QueryBuilder({self._query.describe()!r})"

    # ------------------------------------------------------------------
    # Filters and modifiers
    # ------------------------------------------------------------------

    def eq(self, field: str, value: Any) -> "QueryBuilder":
        """Add an equality predicate.  Multiple predicates are AND-ed."""
        field = require_name("field", field)
        predicate = Predicate(field=field, operator="eq", value=value)
        return self._with(predicates=(*self._query.predicates, predicate))

    filter_equals = eq

    def limit(self, n: int) -> "QueryBuilder":
        """Cap the number of returned records."""
        if isinstance(n, bool) or not isinstance(n, int) or n < 1:
            raise InvalidArgumentError("limit", f"must be a positive integer, got {n!r}")
        return self._with(limit=n)

    def single(self) -> "QueryBuilder":
        """Require exactly one record; the Result then carries that record."""
        return self._with(expect_single=True)

    expect_single = single

    def select(self, fields: str | Sequence[str] | None = None) -> "QueryBuilder":
        """Set the projection.

        On insert/update/delete this also asks the backend to return the
        affected rows, mirroring ``.insert(...).select()`` chains.
        """
        columns = normalise_columns(fields)
        if self._query.operation in (Operation.SELECT, Operation.RPC):
            return self._with(columns=columns)
        return self._with(columns=columns, returning=True)

    def returning(self, fields: str | Sequence[str] | None = None) -> "QueryBuilder":
        """Return the rows affected by a mutation."""
        if self._query.operation in (Operation.SELECT, Operation.RPC):
            raise InvalidArgumentError(
                "returning", f"only valid on mutations, not '{self._query.operation.value}'"
            )
        return self._with(columns=normalise_columns(fields), returning=True)

    def affect_all(self) -> "QueryBuilder":
        """Acknowledge that an unfiltered update/delete may touch every row."""
        return self._with(affect_all=True)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self) -> Result:
        """Send the query.  Never raises; failures come back in the Result."""
        return await self._client.execute(self._query)
