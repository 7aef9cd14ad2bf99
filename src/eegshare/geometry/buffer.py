"""
Circular buffer polygons.

A buffer approximates the disc of `radius_m` around a center with `steps`
vertices placed along great circles, then projected into the same local
equal-area frame the rest of the kernel works in.
"""

from __future__ import annotations

import math

from eegshare.core.geo import GeoPoint, LocalProjection, destination_point
from eegshare.geometry.errors import InvalidRadius
from eegshare.geometry.kernel import Polygon, normalize_ring

MIN_STEPS = 8
DEFAULT_STEPS = 64


def validate_buffer(radius_m: float, steps: int = DEFAULT_STEPS) -> None:
    """Raise `InvalidRadius` / `ValueError` for arguments `build_circle` would reject."""
    r = float(radius_m)
    if not math.isfinite(r) or r <= 0:
        raise InvalidRadius(f"radius must be > 0 meters, got {radius_m!r}")
    if int(steps) < MIN_STEPS:
        raise ValueError(f"steps must be >= {MIN_STEPS}, got {steps!r}")


def _circle_vertices(center: GeoPoint, radius_m: float, steps: int) -> list[GeoPoint]:
    # Negative bearings walk the circle counter-clockwise.
    return [destination_point(center, -360.0 * i / steps, float(radius_m)) for i in range(int(steps))]


def build_circle(
    center: GeoPoint,
    radius_m: float,
    steps: int = DEFAULT_STEPS,
    *,
    projection: LocalProjection | None = None,
) -> Polygon:
    """Build the buffer polygon (projected meters, CCW, no holes)."""
    validate_buffer(radius_m, steps)
    proj = projection or LocalProjection(center)
    ring = [proj.project(p.lat, p.lon) for p in _circle_vertices(center, radius_m, steps)]
    return Polygon(outer=normalize_ring(ring, ccw=True))


def circle_lonlat(center: GeoPoint, radius_m: float, steps: int = DEFAULT_STEPS) -> list[list[float]]:
    """Closed `[lon, lat]` ring of the buffer, for map display (GeoJSON order)."""
    validate_buffer(radius_m, steps)
    coords = [[p.lon, p.lat] for p in _circle_vertices(center, radius_m, steps)]
    coords.append(list(coords[0]))
    return coords
