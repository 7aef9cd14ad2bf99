from __future__ import annotations

import math
import re
from dataclasses import dataclass
from math import asin, atan2, cos, degrees, radians, sin, sqrt

"""
Geospatial helpers.

We keep a tiny geometry layer here so the analysis engine can do distance and
area calculations without pulling in heavier GIS dependencies.

Area math runs in a local sinusoidal projection: it is equal-area on the sphere,
so shoelace areas of projected rings come out in square meters directly.
"""

EARTH_RADIUS_M = 6_371_008.8
METERS_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180.0

_COORD_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*$")


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in meters between two points."""
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * asin(sqrt(h))


def destination_point(origin: GeoPoint, bearing_deg: float, distance_m: float) -> GeoPoint:
    """Walk `distance_m` from `origin` along the great circle with the given initial bearing."""
    lat1 = radians(origin.lat)
    lon1 = radians(origin.lon)
    theta = radians(bearing_deg)
    delta = distance_m / EARTH_RADIUS_M

    lat2 = asin(sin(lat1) * cos(delta) + cos(lat1) * sin(delta) * cos(theta))
    lon2 = lon1 + atan2(sin(theta) * sin(delta) * cos(lat1), cos(delta) - sin(lat1) * sin(lat2))
    return GeoPoint(lat=degrees(lat2), lon=_wrap_lon(degrees(lon2)))


def _wrap_lon(lon: float) -> float:
    # Keep longitudes in [-180, 180).
    return (lon + 180.0) % 360.0 - 180.0


class LocalProjection:
    """Sinusoidal projection centered on `origin` (x east, y north, meters)."""

    def __init__(self, origin: GeoPoint):
        self.origin = origin
        self._lat0 = float(origin.lat)
        self._lon0 = float(origin.lon)

    def __repr__(self) -> str:
        return f"LocalProjection(lat={self._lat0:.6f}, lon={self._lon0:.6f})"

    def project(self, lat: float, lon: float) -> tuple[float, float]:
        dlon = _wrap_lon(float(lon) - self._lon0)
        x = EARTH_RADIUS_M * radians(dlon) * cos(radians(float(lat)))
        y = EARTH_RADIUS_M * radians(float(lat) - self._lat0)
        return x, y

    def unproject(self, x: float, y: float) -> GeoPoint:
        lat = self._lat0 + degrees(float(y) / EARTH_RADIUS_M)
        c = cos(radians(lat))
        if abs(c) < 1e-12:
            return GeoPoint(lat=lat, lon=self._lon0)
        lon = self._lon0 + degrees(float(x) / (EARTH_RADIUS_M * c))
        return GeoPoint(lat=lat, lon=_wrap_lon(lon))

    def project_ring(self, lonlat: list[tuple[float, float]] | list[list[float]]) -> list[tuple[float, float]]:
        """Project a GeoJSON-ordered `(lon, lat)` ring."""
        return [self.project(lat, lon) for lon, lat in lonlat]

    def degrees_to_meters(self, value_deg: float) -> float:
        """Convert a small angular tolerance into projected meters (along a meridian)."""
        return float(value_deg) * METERS_PER_DEGREE


def parse_coordinates(text: str) -> GeoPoint | None:
    """Parse a `"lat, lon"` string; returns None for anything that is not a coordinate pair."""
    if not text:
        return None
    m = _COORD_RE.match(text)
    if not m:
        return None
    lat = float(m.group(1))
    lon = float(m.group(2))
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None
    return GeoPoint(lat=lat, lon=lon)
