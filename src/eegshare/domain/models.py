"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- API/CLI/session inputs (`GeoPoint`, `AnalysisPoint`)
- boundary candidates (`BoundaryFeature`)
- analysis output (`IntersectionResult`, `AnalysisReport`)

Keeping these models in one place helps:
- validation (reject bad coordinates early),
- typed refactors,
- consistent JSON output across CLI/API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

LonLat = tuple[float, float]


class GeoPoint(BaseModel):
    """A geographic point in decimal degrees."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class AnalysisPoint(BaseModel):
    """A marker with a buffer radius (radius is checked by the buffer builder, not here)."""

    center: GeoPoint
    radius_m: float
    label: str = ""


class BoundaryFeature(BaseModel):
    """One administrative boundary candidate (read-only once loaded)."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    # polygons -> rings (outer first) -> (lon, lat) vertices, GeoJSON order.
    polygons: list[list[list[LonLat]]]
    attributes: dict[str, Any] = Field(default_factory=dict)

    @field_validator("polygons")
    @classmethod
    def _require_rings(cls, polygons: list[list[list[LonLat]]]) -> list[list[list[LonLat]]]:
        return [p for p in polygons if p and p[0]]


class IntersectionResult(BaseModel):
    """Intersection of the buffer with one candidate."""

    feature_id: str
    feature_name: str
    intersection_area_m2: float = Field(..., ge=0)
    total_area_m2: float = Field(..., ge=0)
    share_percent: float = Field(..., ge=0, le=100)


class SkippedCandidate(BaseModel):
    """A candidate that could not be analyzed (the batch continued without it)."""

    feature_id: str
    feature_name: str
    reason: Literal["degenerate_geometry", "clipping_failure"]
    message: str = ""


class AnalysisReport(BaseModel):
    """One full trigger: the point, its buffer ring and the result set."""

    generated_at: datetime
    point: AnalysisPoint
    buffer: list[list[float]]
    results: list[IntersectionResult]
    total_intersection_m2: float = 0.0
    skipped: list[SkippedCandidate] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)
