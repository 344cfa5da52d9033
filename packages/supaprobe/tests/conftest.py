"""Shared pytest fixtures for the supaprobe test suite.

``FakePostgrest`` is an in-memory stand-in for the hotel database: it speaks
enough of the PostgREST wire format (eq filters, limit, select with nested
many-to-one embeds, Prefer: return=…) and implements both geospatial
procedures so that the smoke scenarios can run end to end through
``httpx.MockTransport``.
"""

from __future__ import annotations

import copy
import json
import math
import re
import uuid
from typing import Any, AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from supaprobe.client import QueryClient
from supaprobe.config import override_settings
from supaprobe.harness.scenario import Check, Scenario, ScenarioOutcome, Summary
from supaprobe.models import Connection

BASE_URL = "http://test.local"
REST_PREFIX = "/rest/v1/"

_POINT_RE = re.compile(r"POINT\(([-\d.]+) ([-\d.]+)\)")

SEED: dict[str, list[dict[str, Any]]] = {
    "hotels": [
        {
            "id": "11111111-1111-1111-1111-111111111111",
            "name": "Boston Common Hotel",
            "city": "Boston",
            "state": "MA",
            "location": "SRID=4326;POINT(-71.064 42.355)",
        },
        {
            "id": "22222222-2222-2222-2222-222222222222",
            "name": "Harbor View Inn",
            "city": "Boston",
            "state": "MA",
            "location": "SRID=4326;POINT(-71.05 42.36)",
        },
        {
            "id": "33333333-3333-3333-3333-333333333333",
            "name": "Mountain Lodge",
            "city": "Denver",
            "state": "CO",
            "location": "SRID=4326;POINT(-104.985 39.74)",
        },
        {
            "id": "44444444-4444-4444-4444-444444444444",
            "name": "Prairie Rest",
            "city": "Springfield",
            "state": "IL",
            "location": "SRID=4326;POINT(-89.645 39.78)",
        },
        {
            "id": "55555555-5555-5555-5555-555555555555",
            "name": "Flatirons Retreat",
            "city": "Boulder",
            "state": "CO",
            "location": "SRID=4326;POINT(-105.2705 40.015)",
        },
        {
            "id": "66666666-6666-6666-6666-666666666666",
            "name": "Gulf Breeze",
            "city": "Miami",
            "state": "FL",
            "location": "SRID=4326;POINT(-80.19 25.76)",
        },
    ],
    "rooms": [
        {"id": "r1", "hotel_id": "33333333-3333-3333-3333-333333333333", "number": "101"},
        {"id": "r2", "hotel_id": "33333333-3333-3333-3333-333333333333", "number": "102"},
        {"id": "r3", "hotel_id": "11111111-1111-1111-1111-111111111111", "number": "7"},
    ],
    "profiles": [
        {"id": "p1", "name": "Ada"},
        {"id": "p2", "name": "Grace"},
    ],
    "bookings": [
        {"id": "b1", "room_id": "r1", "profile_id": "p1", "nights": 2},
        {"id": "b2", "room_id": "r3", "profile_id": "p2", "nights": 1},
    ],
}


# ---------------------------------------------------------------------------
# Geometry helpers
# ---------------------------------------------------------------------------


def haversine_m(a: tuple[float, float], b: tuple[float, float]) -> float:
    lon1, lat1, lon2, lat2 = map(math.radians, (a[0], a[1], b[0], b[1]))
    h = (
        math.sin((lat2 - lat1) / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    )
    return 2 * 6_371_000 * math.asin(math.sqrt(h))


def _parse_location(value: Any) -> tuple[float, float] | None:
    if not isinstance(value, str):
        return None
    match = _POINT_RE.search(value)
    if match is None:
        return None
    return float(match.group(1)), float(match.group(2))


def _split_top_level(select: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    buf = ""
    for ch in select:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(buf)
            buf = ""
            continue
        buf += ch
    if buf:
        parts.append(buf)
    return parts


# ---------------------------------------------------------------------------
# Fake backend
# ---------------------------------------------------------------------------


class FakePostgrest:
    """In-memory PostgREST double.  ``requests`` records every call."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.tables = copy.deepcopy(tables if tables is not None else SEED)
        self.requests: list[httpx.Request] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if not path.startswith(REST_PREFIX):
            return httpx.Response(404, json={"message": f"No route {path}"})
        name = path[len(REST_PREFIX):]
        body = json.loads(request.content) if request.content else None

        if name.startswith("rpc/"):
            return self._rpc(name[len("rpc/"):], body or {})

        if name not in self.tables:
            return httpx.Response(
                404,
                json={
                    "code": "42P01",
                    "message": f'relation "public.{name}" does not exist',
                    "details": None,
                    "hint": None,
                },
            )

        params = request.url.params
        select = params.get("select", "*")
        filters = [
            (k, v) for k, v in params.multi_items() if k not in ("select", "limit")
        ]
        representation = "return=representation" in request.headers.get("prefer", "")
        table = self.tables[name]

        if request.method == "GET":
            rows = [r for r in table if self._matches(r, filters)]
            if "limit" in params:
                rows = rows[: int(params["limit"])]
            return httpx.Response(200, json=[self._project(r, select) for r in rows])

        if request.method == "POST":
            records = body if isinstance(body, list) else [body]
            created = []
            for record in records:
                row = dict(record)
                row.setdefault("id", str(uuid.uuid4()))
                table.append(row)
                created.append(row)
            if representation:
                return httpx.Response(201, json=[self._project(r, select) for r in created])
            return httpx.Response(201)

        if request.method == "PATCH":
            changed = []
            for row in table:
                if self._matches(row, filters):
                    row.update(body)
                    changed.append(row)
            if representation:
                return httpx.Response(200, json=[self._project(r, select) for r in changed])
            return httpx.Response(204)

        if request.method == "DELETE":
            removed = [r for r in table if self._matches(r, filters)]
            self.tables[name] = [r for r in table if not self._matches(r, filters)]
            if representation:
                return httpx.Response(200, json=[self._project(r, select) for r in removed])
            return httpx.Response(204)

        return httpx.Response(405, json={"message": f"Method {request.method} not allowed"})

    # ------------------------------------------------------------------

    @staticmethod
    def _matches(row: dict[str, Any], filters: list[tuple[str, str]]) -> bool:
        for field, expr in filters:
            if expr == "is.null":
                if row.get(field) is not None:
                    return False
            elif expr.startswith("eq."):
                if str(row.get(field)) != expr[3:]:
                    return False
            else:
                raise AssertionError(f"unsupported filter {field}={expr}")
        return True

    def _project(self, row: dict[str, Any], select: str) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for part in _split_top_level(select):
            if part == "*":
                out.update(row)
            elif "(" in part:
                relation, inner = part.split("(", 1)
                foreign_key = row.get(f"{relation[:-1]}_id")
                target = next(
                    (r for r in self.tables.get(relation, []) if r["id"] == foreign_key),
                    None,
                )
                out[relation] = self._project(target, inner[:-1]) if target else None
            else:
                out[part] = row.get(part)
        return out

    def _located_hotels(self) -> list[tuple[dict[str, Any], tuple[float, float]]]:
        located = []
        for hotel in self.tables["hotels"]:
            where = _parse_location(hotel.get("location"))
            if where is not None:
                located.append((hotel, where))
        return located

    def _rpc(self, name: str, params: dict[str, Any]) -> httpx.Response:
        if name == "hotels_near_point":
            centre = (params["lon"], params["lat"])
            rows = [
                {"id": h["id"], "name": h["name"], "distance_meters": round(d, 1)}
                for h, where in self._located_hotels()
                if (d := haversine_m(centre, where)) <= params["dist_meters"]
            ]
            return httpx.Response(200, json=rows)

        if name == "hotels_near_route":
            points = params["route_points"]
            if len(points) < 2:
                return httpx.Response(
                    400,
                    json={
                        "code": "P0001",
                        "message": "Route must contain at least 2 points",
                        "details": None,
                        "hint": None,
                    },
                )
            samples = []
            for (lon1, lat1), (lon2, lat2) in zip(points, points[1:]):
                for step in range(201):
                    t = step / 200
                    samples.append((lon1 + (lon2 - lon1) * t, lat1 + (lat2 - lat1) * t))
            rows = [
                {"id": h["id"], "name": h["name"]}
                for h, where in self._located_hotels()
                if min(haversine_m(where, s) for s in samples) <= params["dist_meters"]
            ]
            return httpx.Response(200, json=rows)

        return httpx.Response(
            404,
            json={
                "code": "PGRST202",
                "message": f"Could not find the function public.{name}",
                "details": None,
                "hint": None,
            },
        )


class RecordingReporter:
    """Reporter that keeps every event for assertions."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def run_started(self, scenario_count: int) -> None:
        self.events.append(("run_started", scenario_count))

    def scenario_started(self, scenario: Scenario) -> None:
        self.events.append(("scenario_started", scenario.name))

    def check_recorded(self, scenario: Scenario, check: Check) -> None:
        self.events.append(("check_recorded", check.label))

    def scenario_finished(self, outcome: ScenarioOutcome) -> None:
        self.events.append(("scenario_finished", outcome.name))

    def run_finished(self, summary: Summary) -> None:
        self.events.append(("run_finished", summary.total))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Any:
    """Keep the developer's environment and home config out of the tests."""
    for name in (
        "SUPABASE_URL",
        "SUPABASE_API_KEY",
        "SUPAPROBE_CONNECTION__URL",
        "SUPAPROBE_CONNECTION__API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    override_settings(None)
    yield
    override_settings(None)


@pytest.fixture
def connection() -> Connection:
    return Connection(url=BASE_URL, api_key="test-key")


@pytest.fixture
def backend() -> FakePostgrest:
    return FakePostgrest()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest_asyncio.fixture
async def client(
    connection: Connection, backend: FakePostgrest
) -> AsyncGenerator[QueryClient, None]:
    c = QueryClient(connection, transport=backend.transport)
    yield c
    await c.aclose()
