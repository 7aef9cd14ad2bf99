import json
import math
from datetime import datetime, timezone

from eegshare.analysis.report import format_area, one_line, result_lines
from eegshare.cli import main
from eegshare.core.geo import EARTH_RADIUS_M
from eegshare.domain.models import AnalysisPoint, AnalysisReport, GeoPoint, IntersectionResult

LAT0, LON0 = 52.52, 13.405


def _write_boundaries(tmp_path, *, degenerate=False):
    dlat = math.degrees(3000 / EARTH_RADIUS_M)
    dlon = math.degrees(3000 / (EARTH_RADIUS_M * math.cos(math.radians(LAT0))))
    w, e, s, n = LON0 - dlon, LON0 + dlon, LAT0 - dlat, LAT0 + dlat
    features = [
        {
            "type": "Feature",
            "properties": {"AGS": "12054000", "GEN": "Potsdam"},
            "geometry": {"type": "Polygon", "coordinates": [[[w, s], [e, s], [e, n], [w, n], [w, s]]]},
        }
    ]
    if degenerate:
        features.append(
            {
                "type": "Feature",
                "properties": {"AGS": "0", "GEN": "Strich"},
                "geometry": {"type": "Polygon", "coordinates": [[[w, s], [e, s], [w, s]]]},
            }
        )
    path = tmp_path / "gemeinden.geojson"
    path.write_text(json.dumps({"type": "FeatureCollection", "features": features}), encoding="utf-8")
    return str(path)


def _report(results):
    return AnalysisReport(
        generated_at=datetime(2026, 1, 5, tzinfo=timezone.utc),
        point=AnalysisPoint(center=GeoPoint(lat=LAT0, lon=LON0), radius_m=2500),
        buffer=[],
        results=results,
        total_intersection_m2=sum(r.intersection_area_m2 for r in results),
    )


def test_format_area_uses_german_thousands_separator():
    assert format_area(1234567.4) == "1.234.567"
    assert format_area(999.5) == "1.000"
    assert format_area(0) == "0"


def test_result_lines():
    results = [
        IntersectionResult(
            feature_id="1", feature_name="Potsdam", intersection_area_m2=12_000_000.2, total_area_m2=187_000_000, share_percent=61.11
        ),
        IntersectionResult(
            feature_id="2", feature_name="Werder", intersection_area_m2=7_635_000, total_area_m2=115_000_000, share_percent=38.89
        ),
    ]
    assert one_line(results[0]) == "Potsdam: 12.000.000 m² (61.11%) von 187.000.000 m²"
    lines = result_lines(_report(results))
    assert lines[-1] == "Gesamt: 19.635.000 m² (100.00%)"
    assert len(lines) == 3
    assert result_lines(_report([])) == []


def test_cli_analyze_prints_results(tmp_path, capsys):
    path = _write_boundaries(tmp_path)
    code = main(["analyze", "--at", f"{LAT0}, {LON0}", "--radius", "1000", "--boundaries", path])
    out = capsys.readouterr().out
    assert code == 0
    assert "WKA at 52.52000, 13.40500 (r=1000 m)" in out
    assert "Potsdam:" in out
    assert "(100.00%)" in out


def test_cli_analyze_json(tmp_path, capsys):
    path = _write_boundaries(tmp_path)
    code = main(["analyze", "--lat", str(LAT0), "--lon", str(LON0), "--radius", "500", "--boundaries", path, "--json"])
    data = json.loads(capsys.readouterr().out)
    assert code == 0
    assert data["results"][0]["feature_id"] == "12054000"
    assert data["results"][0]["share_percent"] == 100.0


def test_cli_analyze_rejects_bad_input(tmp_path, capsys):
    path = _write_boundaries(tmp_path)
    assert main(["analyze", "--at", "somewhere", "--boundaries", path]) == 2
    assert main(["analyze", "--at", f"{LAT0}, {LON0}", "--radius", "0", "--boundaries", path]) == 2
    assert main(["analyze", "--at", f"{LAT0}, {LON0}", "--steps", "4", "--boundaries", path]) == 2
    assert main(["analyze", "--lat", "100", "--lon", "13", "--boundaries", path]) == 2
    out = capsys.readouterr().out
    assert "Provide --at" in out
    assert "Invalid input" in out


def test_cli_boundaries_info(tmp_path, capsys):
    assert main(["boundaries-info", "--boundaries", _write_boundaries(tmp_path)]) == 0
    assert "Boundaries: 1" in capsys.readouterr().out

    assert main(["boundaries-info", "--boundaries", _write_boundaries(tmp_path, degenerate=True)]) == 2
    out = capsys.readouterr().out
    assert "Degenerate: 1" in out
    assert "Strich" in out


def test_cli_analyze_without_boundary_file(tmp_path, capsys):
    missing = str(tmp_path / "missing.geojson")
    assert main(["analyze", "--at", f"{LAT0}, {LON0}", "--boundaries", missing]) == 0
    assert "No boundary intersects the buffer." in capsys.readouterr().out

    assert main(["boundaries-info", "--boundaries", missing]) == 0
    assert "Boundaries: 0" in capsys.readouterr().out
