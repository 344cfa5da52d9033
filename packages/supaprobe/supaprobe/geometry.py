"""Typed geospatial parameters for remote procedure calls.

Coordinates are WGS84 ``(longitude, latitude)`` in that order, which is the
order the backend's geography functions expect.  Shape errors (non-finite
numbers, out-of-range values, empty routes) are rejected here; whether a
route has enough points to be meaningful is left to the backend.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from supaprobe.exceptions import GeometryError

WGS84_SRID = 4326


class Point(BaseModel):
    model_config = ConfigDict(frozen=True)

    lon: float
    lat: float

    @field_validator("lon")
    @classmethod
    def check_lon(cls, v: float) -> float:
        if not math.isfinite(v) or not -180.0 <= v <= 180.0:
            raise ValueError(f"longitude must be within [-180, 180], got {v}")
        return v

    @field_validator("lat")
    @classmethod
    def check_lat(cls, v: float) -> float:
        if not math.isfinite(v) or not -90.0 <= v <= 90.0:
            raise ValueError(f"latitude must be within [-90, 90], got {v}")
        return v

    @classmethod
    def of(cls, lon: float, lat: float) -> "Point":
        """Build a Point, raising GeometryError instead of a ValidationError."""
        try:
            return cls(lon=lon, lat=lat)
        except ValidationError as exc:
            raise GeometryError(
                f"Invalid point ({lon}, {lat}): {exc.errors()[0]['msg']}",
                context={"lon": lon, "lat": lat},
            ) from exc

    def to_pair(self) -> list[float]:
        return [self.lon, self.lat]

    def to_wkt(self) -> str:
        return f"POINT({self.lon:g} {self.lat:g})"

    def to_ewkt(self, srid: int = WGS84_SRID) -> str:
        """Render as EWKT, e.g. ``SRID=4326;POINT(-71.1 42.36)``."""
        return f"SRID={srid};{self.to_wkt()}"


class Route(BaseModel):
    model_config = ConfigDict(frozen=True)

    points: tuple[Point, ...]

    @field_validator("points")
    @classmethod
    def non_empty(cls, v: tuple[Point, ...]) -> tuple[Point, ...]:
        if not v:
            raise ValueError("route must contain at least one point")
        return v

    @classmethod
    def of(cls, pairs: Iterable[Sequence[float]]) -> "Route":
        """Build a Route from ``(lon, lat)`` pairs."""
        points = []
        for index, pair in enumerate(pairs):
            if len(pair) != 2:
                raise GeometryError(
                    f"Route point #{index} must be a (lon, lat) pair, got {list(pair)}",
                    context={"index": index},
                )
            points.append(Point.of(pair[0], pair[1]))
        try:
            return cls(points=tuple(points))
        except ValidationError as exc:
            raise GeometryError(f"Invalid route: {exc.errors()[0]['msg']}") from exc

    def __len__(self) -> int:
        return len(self.points)

    def to_pairs(self) -> list[list[float]]:
        return [p.to_pair() for p in self.points]


def to_wire(value: Any) -> Any:
    """Convert typed geometry (possibly nested) into JSON-ready values."""
    if isinstance(value, Point):
        return value.to_pair()
    if isinstance(value, Route):
        return value.to_pairs()
    if isinstance(value, dict):
        return {k: to_wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire(v) for v in value]
    return value
