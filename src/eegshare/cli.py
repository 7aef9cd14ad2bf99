"""
EEGShare CLI entrypoint.

This CLI is intended for quick local analyses and debugging without a map UI.
It delegates all analysis logic to `eegshare.analysis.apportion.run_analysis`.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from eegshare.analysis.apportion import project_feature, run_analysis
from eegshare.analysis.report import result_lines
from eegshare.boundaries.loader import load_boundaries
from eegshare.config.settings import Settings, get_settings
from eegshare.core.geo import LocalProjection, parse_coordinates
from eegshare.core.geo import GeoPoint as CoreGeoPoint
from eegshare.core.logging import configure_logging
from eegshare.domain.models import AnalysisPoint, BoundaryFeature, GeoPoint
from eegshare.geometry.errors import DegenerateGeometry
from eegshare.geometry.kernel import polygon_area


def _load_features(settings: Settings, path: str | None) -> list[BoundaryFeature]:
    return load_boundaries(
        path or settings.boundaries.path,
        name_properties=settings.boundaries.name_properties,
        id_property=settings.boundaries.id_property,
        missing_ok=True,
    )


def _resolve_center(args: argparse.Namespace) -> GeoPoint | None:
    if args.at:
        parsed = parse_coordinates(args.at)
        if parsed is None:
            return None
        return GeoPoint(lat=parsed.lat, lon=parsed.lon)
    if args.lat is None or args.lon is None:
        return None
    return GeoPoint(lat=float(args.lat), lon=float(args.lon))


def _cmd_analyze(args: argparse.Namespace) -> int:
    """Handle the `analyze` subcommand."""
    settings = get_settings()
    analysis = settings.analysis
    if args.steps is not None:
        analysis = analysis.model_copy(update={"steps": int(args.steps)})

    try:
        center = _resolve_center(args)
    except ValueError as e:
        # pydantic rejects out-of-range --lat/--lon.
        print(f"Invalid input: {e}")
        return 2
    if center is None:
        print("Provide --at 'LAT, LON' or both --lat and --lon.")
        return 2

    point = AnalysisPoint(
        center=center,
        radius_m=float(args.radius) if args.radius is not None else analysis.default_radius_m,
        label=args.label or "",
    )
    features = _load_features(settings, args.boundaries)
    try:
        report = run_analysis(point, features, analysis)
    except ValueError as e:
        # InvalidRadius and a too-small --steps both land here.
        print(f"Invalid input: {e}")
        return 2

    if args.json:
        print(json.dumps(report.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    label = point.label or analysis.default_label
    print(f"{label} at {center.lat:.5f}, {center.lon:.5f} (r={point.radius_m:.0f} m)")
    lines = result_lines(report)
    if not lines:
        print("No boundary intersects the buffer.")
    for line in lines:
        print(f"  {line}")
    for s in report.skipped:
        print(f"  skipped {s.feature_name} ({s.reason}): {s.message}")
    return 0


def _cmd_boundaries_info(args: argparse.Namespace) -> int:
    settings = get_settings()
    features = _load_features(settings, args.boundaries)

    degenerate: list[str] = []
    for f in features:
        first = f.polygons[0][0][0]
        projection = LocalProjection(CoreGeoPoint(lat=first[1], lon=first[0]))
        try:
            for part in project_feature(f, projection):
                polygon_area(part)
        except DegenerateGeometry as e:
            degenerate.append(f"{f.id} ({f.name}): {e}")

    print("Boundaries:", len(features))
    print("Degenerate:", len(degenerate))
    for line in degenerate[:20]:
        print(f"  {line}")
    return 2 if degenerate else 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the EEGShare CLI."""
    parser = argparse.ArgumentParser(prog="eegshare")
    parser.add_argument("--log-level", type=str, default=None, help="Override app.log_level (e.g. DEBUG)")
    sub = parser.add_subparsers(dest="command", required=True)

    ana = sub.add_parser("analyze", help="Intersect a circular buffer with the boundary set.")
    ana.add_argument("--lat", type=float, default=None)
    ana.add_argument("--lon", type=float, default=None)
    ana.add_argument("--at", type=str, default=None, help="Coordinates as 'LAT, LON' (e.g. '52.52, 13.405')")
    ana.add_argument("--radius", type=float, default=None, help="Buffer radius in meters (default from config)")
    ana.add_argument("--label", type=str, default=None)
    ana.add_argument("--steps", type=int, default=None, help="Circle vertices (>= 8)")
    ana.add_argument("--boundaries", type=str, default=None, help="GeoJSON FeatureCollection path")
    ana.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    ana.set_defaults(func=_cmd_analyze)

    info = sub.add_parser("boundaries-info", help="Offline sanity check of the boundary file.")
    info.add_argument("--boundaries", type=str, default=None)
    info.set_defaults(func=_cmd_boundaries_info)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m eegshare.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
