"""
Boundary feature loader.

The boundary set is a local GeoJSON FeatureCollection (default:
`data/boundaries/gemeinden.geojson`) of municipality polygons. We validate it into
typed `BoundaryFeature` models so the analysis engine can assume a consistent shape.

Display names are resolved here, once, from the first non-empty property listed in
`boundaries.name_properties` (e.g. `GEN`, then `name`).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from pydantic import TypeAdapter

from eegshare.core.env import resolve_project_path
from eegshare.domain.models import BoundaryFeature

logger = logging.getLogger(__name__)

_FEATURES_ADAPTER = TypeAdapter(list[BoundaryFeature])


def _ring(coords: Iterable[Any]) -> list[list[float]]:
    return [[float(p[0]), float(p[1])] for p in coords]


def extract_polygons(geometry: dict[str, Any] | None) -> list[list[list[list[float]]]]:
    """Return polygon -> ring -> [lon, lat] lists for Polygon/MultiPolygon geometries."""
    if not isinstance(geometry, dict):
        return []
    geom_type = geometry.get("type")
    coords = geometry.get("coordinates")
    if not geom_type or coords is None:
        return []
    if geom_type == "Polygon":
        return [[_ring(ring) for ring in coords]]
    if geom_type == "MultiPolygon":
        return [[_ring(ring) for ring in polygon] for polygon in coords]
    return []


def resolve_name(properties: dict[str, Any], name_properties: list[str]) -> str | None:
    for key in name_properties:
        value = properties.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def features_from_geojson(
    payload: dict[str, Any],
    *,
    name_properties: list[str],
    id_property: str | None = None,
) -> list[BoundaryFeature]:
    """Convert a FeatureCollection mapping into validated boundary features."""
    if payload.get("type") != "FeatureCollection":
        raise ValueError("Boundary file must be a GeoJSON FeatureCollection.")

    rows: list[dict[str, Any]] = []
    for index, feature in enumerate(payload.get("features") or []):
        if not isinstance(feature, dict):
            continue
        polygons = extract_polygons(feature.get("geometry"))
        if not polygons:
            continue
        properties = feature.get("properties") or {}
        fid = properties.get(id_property) if id_property else None
        if fid is None:
            fid = feature.get("id")
        name = resolve_name(properties, name_properties)
        rows.append(
            {
                "id": str(fid) if fid is not None else f"feature-{index}",
                "name": name or f"feature-{index}",
                "polygons": polygons,
                "attributes": properties,
            }
        )
    return _FEATURES_ADAPTER.validate_python(rows)


def load_boundaries(
    path: str | Path,
    *,
    name_properties: list[str] | None = None,
    id_property: str | None = None,
    missing_ok: bool = False,
) -> list[BoundaryFeature]:
    """Load and validate a boundary GeoJSON file.

    With `missing_ok`, a missing file yields no features (every analysis then comes
    back empty) instead of `FileNotFoundError`.
    """
    resolved = resolve_project_path(path)
    if missing_ok and not resolved.is_file():
        logger.warning("Boundary file %s not found; no analysis possible until it exists.", resolved)
        return []
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    features = features_from_geojson(
        payload,
        name_properties=name_properties or ["GEN", "name"],
        id_property=id_property,
    )
    logger.info("Loaded %d boundary features from %s", len(features), resolved)
    return features
