"""
Polygon intersection (clipping) for polygons with holes.

The approach is a boundary-fragment variant of Weiler-Atherton:

1. Every ring edge of `a` is intersected with every ring edge of `b`. Each
   intersection point is inserted into both edges, so the two boundaries share
   exactly the same nodes. Points within the snap tolerance of an existing
   vertex become that vertex.
2. The augmented rings are cut into fragments (node to node). A fragment of one
   polygon belongs to the result boundary when its midpoint lies inside the
   other polygon. Boundary stretches shared by both polygons are kept once if
   both run the same way (interiors on the same side) and dropped otherwise.
3. Kept fragments are walked into closed loops. Because normalized polygons
   keep their interior on the left, loops come out oriented: CCW loops are
   outer rings, CW loops are holes.

When no boundaries cross, step 2 degrades to whole-ring containment: disjoint
polygons give nothing, a contained polygon comes back as-is.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from typing import Sequence

from eegshare.core.geo import METERS_PER_DEGREE
from eegshare.geometry.errors import ClippingFailure
from eegshare.geometry.kernel import (
    NOISE_FLOOR_M2,
    BBox,
    Point,
    Polygon,
    Ring,
    bbox_overlaps,
    normalize_polygon,
    point_in_polygon,
    point_in_ring,
    point_on_segment,
    ring_bbox,
    signed_ring_area,
)

logger = logging.getLogger(__name__)

SNAP_DEGREES = 1e-9
DEFAULT_SNAP_TOLERANCE_M = SNAP_DEGREES * METERS_PER_DEGREE

Fragment = tuple[Point, Point]
_EdgeKey = tuple[int, int]


def intersect(
    a: Polygon,
    b: Polygon,
    *,
    snap_tolerance: float = DEFAULT_SNAP_TOLERANCE_M,
    noise_floor: float = NOISE_FLOOR_M2,
) -> list[Polygon]:
    """Return the non-overlapping polygons covering `a ∩ b` (possibly empty).

    Raises `ClippingFailure` if the boundary walk cannot be closed.
    """
    a = normalize_polygon(a.outer, a.holes)
    b = normalize_polygon(b.outer, b.holes)
    a_box = ring_bbox(a.outer)
    if not bbox_overlaps(a_box, ring_bbox(b.outer), pad=snap_tolerance):
        return []

    b = _snap_to_vertices(b, a, snap_tolerance)
    a_rings = list(a.rings)
    b_rings = list(b.rings)

    a_splits, b_splits = _edge_intersections(a_rings, b_rings, snap_tolerance)
    if not a_splits and not b_splits:
        logger.debug("No boundary crossings; resolving by containment.")

    a_frags = _fragments(a_rings, a_splits)
    b_frags = _fragments(b_rings, b_splits)
    kept = _select_fragments(a, a_frags, a_box, b, b_frags)
    loops = _walk(kept)
    return _assemble(loops, noise_floor)


def _snap_to_vertices(b: Polygon, a: Polygon, tol: float) -> Polygon:
    a_vertices = [p for ring in a.rings for p in ring]
    box = ring_bbox(a_vertices)
    tol_sq = tol * tol

    def snap(p: Point) -> Point:
        if not (box[0] - tol <= p[0] <= box[2] + tol and box[1] - tol <= p[1] <= box[3] + tol):
            return p
        for q in a_vertices:
            if (p[0] - q[0]) ** 2 + (p[1] - q[1]) ** 2 <= tol_sq:
                return q
        return p

    rings: list[Ring] = []
    for i, ring in enumerate(b.rings):
        snapped = _dedupe([snap(p) for p in ring])
        if len(snapped) < 3:
            if i == 0:
                raise ClippingFailure("outer ring collapsed while snapping to the other polygon")
            continue
        rings.append(snapped)
    return Polygon(outer=rings[0], holes=tuple(rings[1:]))


def _dedupe(points: Sequence[Point]) -> Ring:
    out: list[Point] = []
    for p in points:
        if not out or out[-1] != p:
            out.append(p)
    while len(out) > 1 and out[0] == out[-1]:
        out.pop()
    return tuple(out)


def _segment_bbox(p: Point, q: Point) -> BBox:
    return min(p[0], q[0]), min(p[1], q[1]), max(p[0], q[0]), max(p[1], q[1])


def _segment_intersections(p1: Point, p2: Point, q1: Point, q2: Point, tol: float) -> list[Point]:
    """Intersection nodes of segments p and q.

    Endpoints lying on the other segment (within `tol`) win over a computed
    crossing, which also covers collinear overlaps.
    """
    hits: list[Point] = []
    for pt, s1, s2 in ((p1, q1, q2), (p2, q1, q2), (q1, p1, p2), (q2, p1, p2)):
        if pt not in hits and point_on_segment(pt, s1, s2, tol):
            hits.append(pt)
    if hits:
        return hits

    rx, ry = p2[0] - p1[0], p2[1] - p1[1]
    sx, sy = q2[0] - q1[0], q2[1] - q1[1]
    denom = rx * sy - ry * sx
    if denom == 0:
        return []
    wx, wy = q1[0] - p1[0], q1[1] - p1[1]
    t = (wx * sy - wy * sx) / denom
    u = (wx * ry - wy * rx) / denom
    if 0.0 < t < 1.0 and 0.0 < u < 1.0:
        return [(p1[0] + t * rx, p1[1] + t * ry)]
    return []


def _edge_intersections(
    a_rings: list[Ring], b_rings: list[Ring], tol: float
) -> tuple[dict[_EdgeKey, list[Point]], dict[_EdgeKey, list[Point]]]:
    a_box = ring_bbox([p for ring in a_rings for p in ring])
    b_edges: list[tuple[_EdgeKey, Point, Point, BBox]] = []
    for ri, ring in enumerate(b_rings):
        n = len(ring)
        for ei in range(n):
            q1, q2 = ring[ei], ring[(ei + 1) % n]
            qb = _segment_bbox(q1, q2)
            if bbox_overlaps(a_box, qb, pad=tol):
                b_edges.append(((ri, ei), q1, q2, qb))

    a_splits: dict[_EdgeKey, list[Point]] = defaultdict(list)
    b_splits: dict[_EdgeKey, list[Point]] = defaultdict(list)
    for ri, ring in enumerate(a_rings):
        n = len(ring)
        for ei in range(n):
            p1, p2 = ring[ei], ring[(ei + 1) % n]
            pb = _segment_bbox(p1, p2)
            for b_key, q1, q2, qb in b_edges:
                if not bbox_overlaps(pb, qb, pad=tol):
                    continue
                for pt in _segment_intersections(p1, p2, q1, q2, tol):
                    a_splits[(ri, ei)].append(pt)
                    b_splits[b_key].append(pt)
    return dict(a_splits), dict(b_splits)


def _fragments(rings: list[Ring], splits: dict[_EdgeKey, list[Point]]) -> list[Fragment]:
    frags: list[Fragment] = []
    for ri, ring in enumerate(rings):
        n = len(ring)
        for ei in range(n):
            start, end = ring[ei], ring[(ei + 1) % n]
            nodes = [start]
            extra = splits.get((ri, ei))
            if extra:
                dx, dy = end[0] - start[0], end[1] - start[1]
                inner = sorted(p for p in set(extra) if p != start and p != end)
                inner.sort(key=lambda p: (p[0] - start[0]) * dx + (p[1] - start[1]) * dy)
                nodes.extend(inner)
            nodes.append(end)
            for s, e in zip(nodes, nodes[1:]):
                if s != e:
                    frags.append((s, e))
    return frags


def _midpoint(frag: Fragment) -> Point:
    (x1, y1), (x2, y2) = frag
    return (x1 + x2) / 2.0, (y1 + y2) / 2.0


def _select_fragments(
    a: Polygon, a_frags: list[Fragment], a_box: BBox, b: Polygon, b_frags: list[Fragment]
) -> list[Fragment]:
    a_set = set(a_frags)
    b_set = set(b_frags)
    kept: list[Fragment] = []

    for frag in a_frags:
        s, e = frag
        if frag in b_set:
            kept.append(frag)
            continue
        if (e, s) in b_set:
            continue
        if point_in_polygon(_midpoint(frag), b, epsilon=0.0):
            kept.append(frag)

    for frag in b_frags:
        s, e = frag
        if frag in a_set or (e, s) in a_set:
            continue
        mx, my = _midpoint(frag)
        if not (a_box[0] <= mx <= a_box[2] and a_box[1] <= my <= a_box[3]):
            continue
        if point_in_polygon((mx, my), a, epsilon=0.0):
            kept.append(frag)
    return kept


def _clockwise_turn(prev: Point, node: Point, nxt: Point) -> float:
    # Clockwise angle from the reversed incoming direction to the outgoing one, in (0, 2pi].
    back = math.atan2(prev[1] - node[1], prev[0] - node[0])
    out = math.atan2(nxt[1] - node[1], nxt[0] - node[0])
    turn = (back - out) % (2.0 * math.pi)
    return turn if turn > 0 else 2.0 * math.pi


def _walk(kept: list[Fragment]) -> list[list[Point]]:
    outgoing: dict[Point, list[int]] = defaultdict(list)
    for i, (s, _) in enumerate(kept):
        outgoing[s].append(i)

    used = [False] * len(kept)
    loops: list[list[Point]] = []
    for i, (start, first_end) in enumerate(kept):
        if used[i]:
            continue
        used[i] = True
        loop = [start]
        prev, node = start, first_end
        while node != start:
            loop.append(node)
            choices = [j for j in outgoing.get(node, ()) if not used[j]]
            if not choices:
                raise ClippingFailure(f"boundary walk could not close at ({node[0]:.3f}, {node[1]:.3f})")
            if len(choices) == 1:
                j = choices[0]
            else:
                j = min(choices, key=lambda k: _clockwise_turn(prev, node, kept[k][1]))
            used[j] = True
            prev, node = node, kept[j][1]
        loops.append(loop)
    return loops


def _assemble(loops: list[list[Point]], noise_floor: float) -> list[Polygon]:
    outers: list[tuple[Ring, float]] = []
    holes: list[Ring] = []
    for loop in loops:
        ring = _dedupe(loop)
        if len(ring) < 3:
            continue
        area = signed_ring_area(ring)
        if abs(area) <= noise_floor:
            continue
        if area > 0:
            outers.append((ring, area))
        else:
            holes.append(ring)

    assigned: list[list[Ring]] = [[] for _ in outers]
    for hole in holes:
        best: int | None = None
        for k, (outer, area) in enumerate(outers):
            if best is not None and area >= outers[best][1]:
                continue
            if all(point_in_ring(p, outer) for p in hole):
                best = k
        if best is None:
            raise ClippingFailure("hole loop has no enclosing outer ring")
        assigned[best].append(hole)

    return [Polygon(outer=outer, holes=tuple(hs)) for (outer, _), hs in zip(outers, assigned)]
