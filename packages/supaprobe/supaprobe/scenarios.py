"""Hotel booking smoke scenarios.

Four scenarios against the hotel schema (``hotels``, ``rooms``, ``bookings``,
``profiles``) and its two geospatial procedures.  They run in this order:

1. basic_fetches            — plain, filtered, single-row and nested reads
2. find_hotels_near_point   — radius search around three points
3. find_hotels_along_route  — corridor search along two routes + one invalid
4. data_modification        — insert → update location → delete → confirm gone

``data_modification`` writes to the database and removes what it wrote.
"""

from __future__ import annotations

from functools import partial
from typing import Any, AsyncIterator

from supaprobe.client import QueryClient
from supaprobe.config import ProcedureConfig
from supaprobe.geometry import Point, Route
from supaprobe.harness.runner import ScenarioRunner
from supaprobe.harness.scenario import Check, Expectation, check, skip
from supaprobe.procedures import find_along_route, find_near

MOUNTAIN_LODGE_ID = "33333333-3333-3333-3333-333333333333"

BOSTON_COMMON = Point(lon=-71.0654, lat=42.3550)
FANEUIL_HALL = Point(lon=-71.0589, lat=42.3601)
DENVER = Point(lon=-104.9903, lat=39.7392)
SPRINGFIELD = Point(lon=-89.6501, lat=39.7817)
KANSAS = Point(lon=-98.35, lat=39.50)

TEST_HOTEL: dict[str, Any] = {
    "name": "Testayside Inn",
    "address": "1 Test Way",
    "city": "Testville",
    "state": "TS",
    "zip_code": "12345",
    "country": "USA",
    "phone": "555-TEST",
    "email": "test@testside.com",
    "location": None,
}
TEST_LOCATION = Point(lon=-71.10, lat=42.36)


# ---------------------------------------------------------------------------
# 1. Basic fetches
# ---------------------------------------------------------------------------


async def basic_fetches(client: QueryClient) -> AsyncIterator[Check]:
    yield check(
        "Fetch First 5 Hotels",
        await client.select("hotels").limit(5).execute(),
    )
    yield check(
        "Fetch Hotels in CO",
        await client.select("hotels", "name, city, state").eq("state", "CO").execute(),
    )
    yield check(
        "Fetch Mountain Lodge by ID",
        await client.select("hotels").eq("id", MOUNTAIN_LODGE_ID).single().execute(),
    )
    yield check(
        "Fetch Rooms for Mountain Lodge",
        await client.select("rooms").eq("hotel_id", MOUNTAIN_LODGE_ID).execute(),
    )
    yield check(
        "Fetch Recent Bookings with Hotel/Profile Names",
        await client.select(
            "bookings", "*, rooms(hotel_id, hotels(name)), profiles(name)"
        ).limit(5).execute(),
    )


# ---------------------------------------------------------------------------
# 2. Hotels near a point
# ---------------------------------------------------------------------------


async def find_hotels_near_point(
    client: QueryClient, procedures: ProcedureConfig
) -> AsyncIterator[Check]:
    searches = [
        ("Boston Common", BOSTON_COMMON, 1000, ""),
        ("Denver", DENVER, 5000, ""),
        ("Kansas", KANSAS, 50000, " - Expect Empty"),
    ]
    for place, point, radius, suffix in searches:
        label = (
            f"Find Hotels within {radius // 1000}km of {place} "
            f"({point.lon}, {point.lat}){suffix}"
        )
        expect = Expectation.empty() if suffix else Expectation.success()
        yield check(label, await find_near(client, point, radius, procedures), expect)


# ---------------------------------------------------------------------------
# 3. Hotels along a route
# ---------------------------------------------------------------------------


async def find_hotels_along_route(
    client: QueryClient, procedures: ProcedureConfig
) -> AsyncIterator[Check]:
    yield check(
        "Find Hotels near Denver-Springfield Route (50km tolerance)",
        await find_along_route(
            client, Route(points=(DENVER, SPRINGFIELD)), 50000, procedures
        ),
    )
    yield check(
        "Find Hotels near short Boston Route (1km tolerance)",
        await find_along_route(
            client, Route(points=(BOSTON_COMMON, FANEUIL_HALL)), 1000, procedures
        ),
    )
    yield check(
        "Test Invalid Route (single point) - Expect Error",
        await find_along_route(client, Route.of([(-71.0, 42.0)]), 1000, procedures),
        Expectation.failure(message_contains="point"),
    )


# ---------------------------------------------------------------------------
# 4. Data modification
# ---------------------------------------------------------------------------


async def insert_hotel(
    client: QueryClient, draft: dict[str, Any]
) -> tuple[Check, str | None]:
    """Insert *draft* and return the check plus the generated id, if any."""
    result = await client.insert("hotels", draft).select().single().execute()
    hotel_id = None
    if result.ok and isinstance(result.data, dict):
        hotel_id = result.data.get("id")
    return check("Add New Hotel (No Location Yet)", result), hotel_id


async def set_hotel_location(client: QueryClient, hotel_id: str, point: Point) -> Check:
    result = await (
        client.update("hotels", {"location": point.to_ewkt()})
        .eq("id", hotel_id)
        .select()
        .single()
        .execute()
    )
    return check(f"Update Hotel {hotel_id} Location", result)


async def delete_hotel(client: QueryClient, hotel_id: str) -> Check:
    result = await client.delete("hotels").eq("id", hotel_id).execute()
    return check(f"Delete Test Hotel {hotel_id}", result)


async def confirm_hotel_deleted(client: QueryClient, hotel_id: str) -> Check:
    result = await client.select("hotels").eq("id", hotel_id).single().execute()
    return check(
        f"Fetch Deleted Hotel {hotel_id} - Expect Error",
        result,
        Expectation.failure(),
    )


async def data_modification(client: QueryClient) -> AsyncIterator[Check]:
    inserted, hotel_id = await insert_hotel(client, TEST_HOTEL)
    yield inserted
    if hotel_id is None:
        reason = "insert did not return a hotel id"
        yield skip("Update Hotel Location", reason)
        yield skip("Delete Test Hotel", reason)
        yield skip("Fetch Deleted Hotel", reason)
        return

    yield await set_hotel_location(client, hotel_id, TEST_LOCATION)
    yield await delete_hotel(client, hotel_id)
    yield await confirm_hotel_deleted(client, hotel_id)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def register_hotel_scenarios(
    runner: ScenarioRunner, procedures: ProcedureConfig | None = None
) -> ScenarioRunner:
    procedures = procedures or ProcedureConfig()
    runner.register("basic_fetches", basic_fetches, "Basic Fetch Tests")
    runner.register(
        "find_hotels_near_point",
        partial(find_hotels_near_point, procedures=procedures),
        "'Find Hotels Near Point' Tests",
    )
    runner.register(
        "find_hotels_along_route",
        partial(find_hotels_along_route, procedures=procedures),
        "'Find Hotels Along Route' Tests",
    )
    runner.register("data_modification", data_modification, "Data Modification Tests")
    return runner
