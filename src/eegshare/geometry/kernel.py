"""
Planar geometry kernel.

Points are `(x, y)` tuples in projected meters (see `eegshare.core.geo.LocalProjection`).
Rings are stored open: the closing vertex is implied, never repeated.

Orientation convention for normalized polygons:
- outer rings are counter-clockwise (positive signed area),
- holes are clockwise,
so the polygon interior is always on the left of every edge.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from eegshare.geometry.errors import DegenerateGeometry

Point = tuple[float, float]
Ring = tuple[Point, ...]
BBox = tuple[float, float, float, float]

# Areas at or below this many square meters are clipping noise.
NOISE_FLOOR_M2 = 1e-6


@dataclass(frozen=True)
class Polygon:
    """One outer ring plus zero or more holes."""

    outer: Ring
    holes: tuple[Ring, ...] = ()

    @property
    def rings(self) -> tuple[Ring, ...]:
        return (self.outer, *self.holes)


def signed_ring_area(ring: Sequence[Point]) -> float:
    """Shoelace area; positive for counter-clockwise rings."""
    n = len(ring)
    if n < 3:
        return 0.0
    total = 0.0
    x0, y0 = ring[0]
    # Shifting to the first vertex keeps the products small for rings far from the origin.
    for i in range(1, n - 1):
        x1, y1 = ring[i]
        x2, y2 = ring[i + 1]
        total += (x1 - x0) * (y2 - y0) - (x2 - x0) * (y1 - y0)
    return total / 2.0


def ring_area(ring: Sequence[Point]) -> float:
    """Unsigned ring area in square meters."""
    return abs(signed_ring_area(ring))


def is_ccw(ring: Sequence[Point]) -> bool:
    return signed_ring_area(ring) > 0


def point_on_segment(point: Point, a: Point, b: Point, epsilon: float = 1e-9) -> bool:
    """True if `point` lies within `epsilon` meters of segment `a`-`b`."""
    (x, y), (x1, y1), (x2, y2) = point, a, b
    dx = x2 - x1
    dy = y2 - y1
    seg_len_sq = dx * dx + dy * dy
    if seg_len_sq == 0:
        return (x - x1) ** 2 + (y - y1) ** 2 <= epsilon * epsilon
    cross = (x - x1) * dy - (y - y1) * dx
    if cross * cross > epsilon * epsilon * seg_len_sq:
        return False
    dot = (x - x1) * dx + (y - y1) * dy
    slack = epsilon * math.sqrt(seg_len_sq)
    return -slack <= dot <= seg_len_sq + slack


def point_in_ring(point: Point, ring: Sequence[Point], epsilon: float = 1e-9) -> bool:
    """Ray-casting test; points on the boundary count as inside."""
    n = len(ring)
    if n < 3:
        return False
    x, y = point
    inside = False
    for i in range(n):
        x1, y1 = ring[i]
        x2, y2 = ring[(i + 1) % n]
        if point_on_segment(point, (x1, y1), (x2, y2), epsilon):
            return True
        if (y1 > y) != (y2 > y):
            x_at_y = x1 + (y - y1) * (x2 - x1) / (y2 - y1)
            if x < x_at_y:
                inside = not inside
    return inside


def point_in_polygon(point: Point, polygon: Polygon, epsilon: float = 1e-9) -> bool:
    """Inside (or on) the outer ring and not strictly inside any hole."""
    if not point_in_ring(point, polygon.outer, epsilon):
        return False
    for hole in polygon.holes:
        if _on_ring_boundary(point, hole, epsilon):
            continue
        if point_in_ring(point, hole, epsilon):
            return False
    return True


def _on_ring_boundary(point: Point, ring: Sequence[Point], epsilon: float) -> bool:
    n = len(ring)
    return any(point_on_segment(point, ring[i], ring[(i + 1) % n], epsilon) for i in range(n))


def normalize_ring(points: Iterable[Sequence[float]], *, ccw: bool = True) -> Ring:
    """Drop closing/consecutive duplicates and orient the ring.

    Raises `DegenerateGeometry` for rings with fewer than 3 distinct vertices or zero area.
    """
    out: list[Point] = []
    for p in points:
        pt = (float(p[0]), float(p[1]))
        if out and out[-1] == pt:
            continue
        out.append(pt)
    while len(out) > 1 and out[0] == out[-1]:
        out.pop()
    if len(set(out)) < 3:
        raise DegenerateGeometry(f"ring has {len(set(out))} distinct vertices; need at least 3")

    area = signed_ring_area(out)
    if area == 0:
        raise DegenerateGeometry("ring has zero area")
    if (area > 0) != ccw:
        out.reverse()
    return tuple(out)


def normalize_polygon(outer: Iterable[Sequence[float]], holes: Iterable[Iterable[Sequence[float]]] = ()) -> Polygon:
    """Build a polygon with a CCW outer ring and CW holes."""
    return Polygon(
        outer=normalize_ring(outer, ccw=True),
        holes=tuple(normalize_ring(h, ccw=False) for h in holes),
    )


def polygon_area(polygon: Polygon) -> float:
    """Outer ring area minus hole areas, in square meters."""
    outer_area = ring_area(polygon.outer)
    if outer_area <= 0:
        raise DegenerateGeometry("outer ring has zero area")
    holes_area = 0.0
    for i, hole in enumerate(polygon.holes):
        if not all(point_in_ring(p, polygon.outer) for p in hole):
            raise DegenerateGeometry(f"hole {i} is not contained in the outer ring")
        holes_area += ring_area(hole)
    return outer_area - holes_area


def ring_bbox(ring: Iterable[Sequence[float]]) -> BBox:
    min_x = min_y = float("inf")
    max_x = max_y = float("-inf")
    for p in ring:
        x, y = float(p[0]), float(p[1])
        min_x = min(min_x, x)
        min_y = min(min_y, y)
        max_x = max(max_x, x)
        max_y = max(max_y, y)
    return min_x, min_y, max_x, max_y


def bbox_overlaps(a: BBox, b: BBox, pad: float = 0.0) -> bool:
    return not (
        a[2] + pad < b[0]
        or b[2] + pad < a[0]
        or a[3] + pad < b[1]
        or b[3] + pad < a[1]
    )
