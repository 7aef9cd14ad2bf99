from __future__ import annotations

# This module is the "orchestrator" for one analysis trigger.
# It wires together:
# - the buffer polygon (BufferBuilder)
# - every boundary candidate (projected into the buffer's local frame)
# - polygon clipping (ClipEngine) and area math (GeometryKernel)
# - share normalization into an `IntersectionResult` list
#
# Fail open per candidate: one broken boundary is logged and skipped, never fatal.

import logging
import math
import time
from datetime import datetime, timezone
from typing import Callable, Sequence

from eegshare.config.settings import AnalysisSettings
from eegshare.core.geo import GeoPoint as CoreGeoPoint, LocalProjection
from eegshare.domain.models import (
    AnalysisPoint,
    AnalysisReport,
    BoundaryFeature,
    IntersectionResult,
    SkippedCandidate,
)
from eegshare.geometry.buffer import build_circle, circle_lonlat
from eegshare.geometry.clip import SNAP_DEGREES, intersect
from eegshare.geometry.errors import ClippingFailure, DegenerateGeometry
from eegshare.geometry.kernel import (
    NOISE_FLOOR_M2,
    BBox,
    Polygon,
    bbox_overlaps,
    normalize_polygon,
    polygon_area,
    ring_bbox,
)

logger = logging.getLogger(__name__)

# Slack for the lon/lat prefilter (buffer edges are straight in projected space, not in degrees).
_LONLAT_BBOX_PAD_DEG = 1e-6


class AnalysisCancelled(RuntimeError):
    """A newer trigger superseded the computation in flight."""


def apportion_shares(areas: Sequence[float]) -> list[float]:
    """Percentage shares rounded to 2 decimals that add up to exactly 100.00.

    Each share is floored to hundredths of a percent; the missing hundredths go to the
    largest remainders (earlier entries win ties).
    """
    total = math.fsum(areas)
    if total <= 0:
        return [0.0 for _ in areas]
    raw = [a / total * 10_000 for a in areas]
    units = [math.floor(r) for r in raw]
    missing = 10_000 - sum(units)
    by_remainder = sorted(range(len(raw)), key=lambda i: (-(raw[i] - units[i]), i))
    for i in by_remainder[: max(0, missing)]:
        units[i] += 1
    return [u / 100 for u in units]


def _feature_lonlat_bbox(feature: BoundaryFeature) -> BBox:
    return ring_bbox(p for polygon in feature.polygons for p in polygon[0])


def _buffer_lonlat_bbox(buffer: Polygon, projection: LocalProjection) -> BBox:
    points = [projection.unproject(x, y) for x, y in buffer.outer]
    return ring_bbox((p.lon, p.lat) for p in points)


def project_feature(feature: BoundaryFeature, projection: LocalProjection) -> list[Polygon]:
    """Project and normalize every polygon of a feature (raises `DegenerateGeometry`)."""
    return [
        normalize_polygon(
            projection.project_ring(polygon[0]),
            [projection.project_ring(hole) for hole in polygon[1:]],
        )
        for polygon in feature.polygons
    ]


def analyze(
    buffer: Polygon,
    candidates: Sequence[BoundaryFeature],
    projection: LocalProjection,
    *,
    snap_degrees: float = SNAP_DEGREES,
    noise_floor_m2: float = NOISE_FLOOR_M2,
    is_cancelled: Callable[[], bool] | None = None,
    on_skip: Callable[[SkippedCandidate], None] | None = None,
) -> list[IntersectionResult]:
    """Intersect `buffer` with every candidate and apportion the intersected area.

    `buffer` must be expressed in `projection`'s frame. Output keeps candidate order.
    """
    if not candidates:
        return []

    snap_tolerance = projection.degrees_to_meters(snap_degrees)
    buffer_box = _buffer_lonlat_bbox(buffer, projection)

    def skip(feature: BoundaryFeature, reason: str, exc: Exception) -> None:
        logger.warning("Skipping boundary %s (%s): %s", feature.id, feature.name, str(exc))
        if on_skip is not None:
            on_skip(
                SkippedCandidate(
                    feature_id=feature.id,
                    feature_name=feature.name,
                    reason=reason,
                    message=str(exc),
                )
            )

    hits: list[tuple[BoundaryFeature, float, float]] = []
    for feature in candidates:
        if is_cancelled is not None and is_cancelled():
            raise AnalysisCancelled("analysis superseded by a newer trigger")
        if not feature.polygons:
            continue
        if not bbox_overlaps(buffer_box, _feature_lonlat_bbox(feature), pad=_LONLAT_BBOX_PAD_DEG):
            continue

        try:
            parts = project_feature(feature, projection)
            total_area = math.fsum(polygon_area(p) for p in parts)
            pieces = [
                piece
                for part in parts
                for piece in intersect(buffer, part, snap_tolerance=snap_tolerance, noise_floor=noise_floor_m2)
            ]
            area = math.fsum(polygon_area(p) for p in pieces)
        except DegenerateGeometry as e:
            skip(feature, "degenerate_geometry", e)
            continue
        except ClippingFailure as e:
            skip(feature, "clipping_failure", e)
            continue

        if area <= noise_floor_m2:
            continue
        hits.append((feature, area, total_area))

    if not hits:
        return []

    shares = apportion_shares([area for _, area, _ in hits])
    return [
        IntersectionResult(
            feature_id=feature.id,
            feature_name=feature.name,
            intersection_area_m2=area,
            total_area_m2=total_area,
            share_percent=share,
        )
        for (feature, area, total_area), share in zip(hits, shares)
    ]


def run_analysis(
    point: AnalysisPoint,
    features: Sequence[BoundaryFeature],
    settings: AnalysisSettings,
    *,
    is_cancelled: Callable[[], bool] | None = None,
) -> AnalysisReport:
    """Full trigger: build the buffer around `point`, analyze, and wrap it into a report."""
    t0 = time.perf_counter()
    center = CoreGeoPoint(lat=point.center.lat, lon=point.center.lon)
    projection = LocalProjection(center)
    buffer = build_circle(center, point.radius_m, settings.steps, projection=projection)

    skipped: list[SkippedCandidate] = []
    results = analyze(
        buffer,
        features,
        projection,
        snap_degrees=settings.snap_degrees,
        noise_floor_m2=settings.noise_floor_m2,
        is_cancelled=is_cancelled,
        on_skip=skipped.append,
    )
    elapsed_ms = int((time.perf_counter() - t0) * 1000)
    logger.info(
        "Analyzed %s (r=%.0f m) against %d boundaries: %d hits, %d skipped in %d ms",
        point.label or "point",
        point.radius_m,
        len(features),
        len(results),
        len(skipped),
        elapsed_ms,
    )
    return AnalysisReport(
        generated_at=datetime.now(timezone.utc),
        point=point,
        buffer=circle_lonlat(center, point.radius_m, settings.steps),
        results=results,
        total_intersection_m2=math.fsum(r.intersection_area_m2 for r in results),
        skipped=skipped,
        meta={
            "steps": settings.steps,
            "candidates": len(features),
            "buffer_area_m2": polygon_area(buffer),
            "elapsed_ms": elapsed_ms,
        },
    )
