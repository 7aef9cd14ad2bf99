from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from eegshare.boundaries.loader import extract_polygons, resolve_name
from eegshare.core.env import resolve_project_path


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, separators=(",", ":")), encoding="utf-8")


def _round_polygons(polygons: list, digits: int) -> list:
    return [[[[round(x, digits), round(y, digits)] for x, y in ring] for ring in polygon] for polygon in polygons]


def slim_feature(feature: dict[str, Any], *, keep: list[str], name_properties: list[str], digits: int) -> dict | None:
    """Keep Polygon/MultiPolygon geometry (2D, rounded) and a small property subset."""
    polygons = extract_polygons(feature.get("geometry"))
    if not polygons:
        return None
    props = feature.get("properties") or {}
    out_props = {k: props[k] for k in keep if k in props}
    name = resolve_name(props, name_properties)
    if name and "name" not in out_props:
        out_props["name"] = name
    rounded = _round_polygons(polygons, digits)
    geometry = (
        {"type": "Polygon", "coordinates": rounded[0]}
        if len(rounded) == 1
        else {"type": "MultiPolygon", "coordinates": rounded}
    )
    return {"type": "Feature", "properties": out_props, "geometry": geometry}


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Slim a municipality GeoJSON into the EEGShare boundary file.")
    p.add_argument("--in", dest="in_path", required=True, help="Source GeoJSON FeatureCollection")
    p.add_argument("--out", type=str, default="data/boundaries/gemeinden.geojson")
    p.add_argument("--keep", action="append", default=[], help="Property to keep (repeatable). Default: AGS, GEN")
    p.add_argument("--name-property", action="append", default=[], help="Name lookup order. Default: GEN, name")
    p.add_argument("--digits", type=int, default=7, help="Coordinate decimals to keep")
    args = p.parse_args(argv)

    in_path = resolve_project_path(args.in_path)
    out_path = resolve_project_path(args.out)
    keep = args.keep or ["AGS", "GEN"]
    name_properties = args.name_property or ["GEN", "name"]

    payload = _read_json(in_path)
    if not isinstance(payload, dict) or payload.get("type") != "FeatureCollection":
        print("Invalid input: expected a GeoJSON FeatureCollection.")
        return 2

    features = []
    dropped = 0
    for f in payload.get("features") or []:
        slim = slim_feature(f, keep=keep, name_properties=name_properties, digits=int(args.digits)) if isinstance(f, dict) else None
        if slim is None:
            dropped += 1
            continue
        features.append(slim)

    _write_json(out_path, {"type": "FeatureCollection", "features": features})
    print("Input:", in_path)
    print("Output:", out_path)
    print("Features written:", len(features))
    print("Features dropped (no polygon geometry):", dropped)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
