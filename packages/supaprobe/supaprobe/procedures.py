"""Typed wrappers for the two geospatial remote procedures.

``find_near`` and ``find_along_route`` translate :class:`Point` / :class:`Route`
values into the parameter mapping the backend functions expect.  The names of
the functions and of their parameters come from :class:`ProcedureConfig`, so a
backend with a different naming scheme only needs configuration.
"""

from __future__ import annotations

from supaprobe.client import INVALID_ARGUMENT_CODE, QueryClient
from supaprobe.config import ProcedureConfig
from supaprobe.geometry import Point, Route
from supaprobe.logging import get_logger
from supaprobe.models import FailureKind, Result

log = get_logger(__name__)

_DEFAULT_PROCEDURES = ProcedureConfig()


def _check_distance(name: str, value: float) -> Result | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        return Result.failure(
            f"{name} must be a non-negative number, got {value!r}",
            kind=FailureKind.VALIDATION,
            code=INVALID_ARGUMENT_CODE,
        )
    return None


async def find_near(
    client: QueryClient,
    point: Point,
    radius_meters: float,
    procedures: ProcedureConfig = _DEFAULT_PROCEDURES,
) -> Result:
    """Records within *radius_meters* of *point*.  An empty list is a success."""
    problem = _check_distance("radius_meters", radius_meters)
    if problem is not None:
        return problem
    log.debug("rpc_called", procedure=procedures.near_point, point=point.to_pair())
    return await client.rpc(
        procedures.near_point,
        {
            procedures.longitude_param: point.lon,
            procedures.latitude_param: point.lat,
            procedures.distance_param: radius_meters,
        },
    )


async def find_along_route(
    client: QueryClient,
    route: Route,
    tolerance_meters: float,
    procedures: ProcedureConfig = _DEFAULT_PROCEDURES,
) -> Result:
    """Records within *tolerance_meters* of the line through *route*.

    The backend requires at least two points and reports a shorter route as
    an error; that error is returned unchanged.
    """
    problem = _check_distance("tolerance_meters", tolerance_meters)
    if problem is not None:
        return problem
    log.debug("rpc_called", procedure=procedures.along_route, points=len(route))
    return await client.rpc(
        procedures.along_route,
        {
            procedures.route_param: route,
            procedures.distance_param: tolerance_meters,
        },
    )
