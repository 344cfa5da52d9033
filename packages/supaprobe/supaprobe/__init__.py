"""supaprobe — Smoke-test harness for hosted PostgREST databases.

Drives a row-store + remote-procedure-call backend (Supabase and other
PostgREST deployments) through a typed, chainable query adapter and reports
the outcome of an ordered list of scenarios.

Layers (bottom to top):
    1. Models     — Connection, Query, Result, typed geometry
    2. Adapter    — QueryClient / QueryBuilder over httpx, procedure helpers
    3. Harness    — ScenarioRunner, checks and expectations, console report
    4. Scenarios  — the hotel booking smoke suite
    5. CLI        — ``supaprobe run``
"""

__version__ = "0.1.0"

from supaprobe.client import QueryClient
from supaprobe.geometry import Point, Route
from supaprobe.models import Connection, Failure, Query, Result

__all__ = [
    "__version__",
    "Connection",
    "Failure",
    "Point",
    "Query",
    "QueryClient",
    "Result",
    "Route",
]
