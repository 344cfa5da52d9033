"""Query adapter — Async PostgREST client.

Wraps one :class:`~supaprobe.models.Connection` in an ``httpx.AsyncClient``
and turns :class:`~supaprobe.models.Query` objects into HTTP requests.

Every call is a single attempt.  Local validation errors, transport errors
(``httpx.HTTPError``), non-2xx responses and cardinality violations all come
back as a failed :class:`~supaprobe.models.Result`; nothing raises past
``execute()`` or ``rpc()``.

Usage::

    async with QueryClient(connection) as client:
        result = await client.select("hotels").limit(5).execute()
        near = await client.rpc("hotels_near_point", {"lon": -71.06, "lat": 42.35, "dist_meters": 1000})
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any, Sequence

import httpx

from supaprobe.exceptions import InvalidArgumentError
from supaprobe.geometry import to_wire
from supaprobe.logging import get_logger
from supaprobe.models import (
    CARDINALITY_ERROR_CODE,
    Connection,
    FailureKind,
    Operation,
    Query,
    Result,
)
from supaprobe.query import QueryBuilder, normalise_columns, require_name

log = get_logger(__name__)

INVALID_ARGUMENT_CODE = "invalid_argument"
TRANSPORT_ERROR_CODE = "transport_error"

_METHODS = {
    Operation.SELECT: "GET",
    Operation.INSERT: "POST",
    Operation.UPDATE: "PATCH",
    Operation.DELETE: "DELETE",
    Operation.RPC: "POST",
}


class QueryClient:
    """Asynchronous query adapter for a PostgREST-compatible backend."""

    def __init__(
        self,
        connection: Connection,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._connection = connection
        self._http = httpx.AsyncClient(
            base_url=connection.rest_url,
            headers=connection.headers(),
            timeout=connection.timeout_seconds,
            transport=transport,
        )

    @property
    def connection(self) -> Connection:
        return self._connection

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "QueryClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def select(
        self, collection: str, fields: str | Sequence[str] | None = None
    ) -> QueryBuilder:
        return QueryBuilder(
            self,
            Query(
                collection=require_name("collection", collection),
                operation=Operation.SELECT,
                columns=normalise_columns(fields),
            ),
        )

    def insert(
        self, collection: str, record: Mapping[str, Any] | Sequence[Mapping[str, Any]]
    ) -> QueryBuilder:
        return QueryBuilder(
            self,
            Query(
                collection=require_name("collection", collection),
                operation=Operation.INSERT,
                payload=copy.deepcopy(record),
            ),
        )

    def update(self, collection: str, patch: Mapping[str, Any]) -> QueryBuilder:
        return QueryBuilder(
            self,
            Query(
                collection=require_name("collection", collection),
                operation=Operation.UPDATE,
                payload=copy.deepcopy(patch),
            ),
        )

    def delete(self, collection: str) -> QueryBuilder:
        return QueryBuilder(
            self,
            Query(
                collection=require_name("collection", collection),
                operation=Operation.DELETE,
            ),
        )

    async def rpc(self, name: str, params: Mapping[str, Any] | None = None) -> Result:
        """Invoke a named remote procedure with keyword parameters."""
        try:
            name = require_name("name", name)
        except InvalidArgumentError as exc:
            return _validation_failure(exc.message)
        query = Query(
            collection=name,
            operation=Operation.RPC,
            payload=copy.deepcopy(params) if params else {},
        )
        return await self.execute(query)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, query: Query) -> Result:
        problem = _validate(query)
        if problem is not None:
            log.info("query_rejected", query=query.describe(), reason=problem)
            return _validation_failure(problem)

        try:
            request = self._build_request(query)
        except (TypeError, ValueError) as exc:
            log.info("query_rejected", query=query.describe(), reason=str(exc))
            return _validation_failure(f"Cannot encode request: {exc}")

        if self._http.is_closed:
            return _transport_failure(
                query, "Cannot send a request, as the client has been closed", "ClientClosed"
            )

        try:
            response = await self._http.send(request)
        except httpx.HTTPError as exc:
            return _transport_failure(query, str(exc) or type(exc).__name__, type(exc).__name__)

        result = _to_result(query, response)
        if result.ok:
            log.debug(
                "query_executed",
                query=query.describe(),
                status=response.status_code,
                rows=len(result.records),
            )
        else:
            log.info(
                "query_failed",
                query=query.describe(),
                status=response.status_code,
                error=str(result.error),
            )
        return result

    def _build_request(self, query: Query) -> httpx.Request:
        params: list[tuple[str, str]] = []
        headers: dict[str, str] = {}
        body: Any = None

        if query.operation is Operation.RPC:
            path = f"/rpc/{query.collection}"
            body = to_wire(dict(query.payload))
            if query.columns:
                params.append(("select", query.columns))
        else:
            path = f"/{query.collection}"
            if query.operation is Operation.SELECT:
                params.append(("select", query.columns or "*"))
            elif query.returning:
                params.append(("select", query.columns or "*"))
            params.extend(p.to_param() for p in query.predicates)
            if query.limit is not None:
                params.append(("limit", str(query.limit)))
            if query.operation in (Operation.INSERT, Operation.UPDATE):
                body = to_wire(query.payload)
            if query.operation is not Operation.SELECT:
                headers["Prefer"] = (
                    "return=representation" if query.returning else "return=minimal"
                )

        return self._http.build_request(
            _METHODS[query.operation],
            path,
            params=params,
            json=body,
            headers=headers,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _validation_failure(message: str) -> Result:
    return Result.failure(message, kind=FailureKind.VALIDATION, code=INVALID_ARGUMENT_CODE)


def _transport_failure(query: Query, message: str, details: str) -> Result:
    log.warning("query_transport_failed", query=query.describe(), error=message)
    return Result.failure(
        message,
        kind=FailureKind.TRANSPORT,
        code=TRANSPORT_ERROR_CODE,
        details=details,
    )


def _validate(query: Query) -> str | None:
    """Return a problem description, or None when the query may be sent."""
    if query.is_destructive and not query.predicates and not query.affect_all:
        return (
            f"{query.operation.value} on '{query.collection}' has no filter; "
            "add a filter or call affect_all() to touch every row"
        )
    if query.operation is Operation.INSERT:
        payload = query.payload
        if isinstance(payload, Mapping):
            if not payload:
                return "insert record must not be empty"
        elif isinstance(payload, (list, tuple)):
            if not payload or not all(isinstance(r, Mapping) for r in payload):
                return "insert payload must be a non-empty list of records"
        else:
            return f"insert record must be a mapping, got {type(payload).__name__}"
    if query.operation is Operation.UPDATE:
        if not isinstance(query.payload, Mapping) or not query.payload:
            return "update patch must be a non-empty mapping"
    if query.operation is Operation.RPC:
        if not isinstance(query.payload, Mapping) or not all(
            isinstance(k, str) for k in query.payload
        ):
            return "procedure parameters must be a mapping with string keys"
    return None


def _backend_failure(response: httpx.Response) -> Result:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return Result.failure(
            str(body["message"]),
            kind=FailureKind.BACKEND,
            code=str(body["code"]) if body.get("code") is not None else None,
            details=body.get("details"),
            hint=body.get("hint"),
            status_code=response.status_code,
        )
    text = response.text.strip() or response.reason_phrase
    return Result.failure(
        f"HTTP {response.status_code}: {text}",
        kind=FailureKind.BACKEND,
        code=str(response.status_code),
        status_code=response.status_code,
    )


def _to_result(query: Query, response: httpx.Response) -> Result:
    if response.is_error:
        return _backend_failure(response)

    if response.status_code == 204 or not response.content:
        records: list[dict[str, Any]] = []
    else:
        try:
            body = response.json()
        except ValueError:
            return Result.failure(
                "Backend returned a non-JSON body",
                kind=FailureKind.BACKEND,
                details=response.text[:200],
                status_code=response.status_code,
            )
        if isinstance(body, list):
            records = [r if isinstance(r, dict) else {"value": r} for r in body]
        elif isinstance(body, dict):
            records = [body]
        elif body is None:
            records = []
        else:
            # Scalar-returning procedures.
            records = [{"value": body}]

    if query.expect_single:
        if len(records) != 1:
            return Result.failure(
                "JSON object requested, multiple (or no) rows returned",
                kind=FailureKind.CARDINALITY,
                code=CARDINALITY_ERROR_CODE,
                details=f"The result contains {len(records)} rows",
                status_code=response.status_code,
            )
        return Result.success(records[0], status_code=response.status_code)

    return Result.success(records, status_code=response.status_code)
