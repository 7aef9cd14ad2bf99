import json

import pytest

from eegshare.boundaries.loader import extract_polygons, features_from_geojson, load_boundaries, resolve_name

SQUARE = [[13.0, 52.0], [13.1, 52.0], [13.1, 52.1], [13.0, 52.1], [13.0, 52.0]]
HOLE = [[13.04, 52.04], [13.06, 52.04], [13.06, 52.06], [13.04, 52.04]]


def _collection(*features):
    return {"type": "FeatureCollection", "features": list(features)}


def test_extract_polygons_handles_polygon_multipolygon_and_3d_coordinates():
    poly = extract_polygons({"type": "Polygon", "coordinates": [SQUARE, HOLE]})
    assert len(poly) == 1 and len(poly[0]) == 2

    multi = extract_polygons({"type": "MultiPolygon", "coordinates": [[SQUARE], [SQUARE]]})
    assert len(multi) == 2

    with_z = extract_polygons({"type": "Polygon", "coordinates": [[[13.0, 52.0, 35.5], [13.1, 52.0, 0], [13.0, 52.1, 1]]]})
    assert with_z[0][0][0] == [13.0, 52.0]

    assert extract_polygons({"type": "Point", "coordinates": [13.0, 52.0]}) == []
    assert extract_polygons(None) == []


def test_resolve_name_uses_first_non_empty_property():
    assert resolve_name({"GEN": "Potsdam", "name": "x"}, ["GEN", "name"]) == "Potsdam"
    assert resolve_name({"GEN": "  ", "name": "Werder"}, ["GEN", "name"]) == "Werder"
    assert resolve_name({"GEN": None}, ["GEN", "name"]) is None


def test_features_from_geojson_ids_names_and_skips():
    payload = _collection(
        {"type": "Feature", "properties": {"AGS": "12054000", "GEN": "Potsdam"}, "geometry": {"type": "Polygon", "coordinates": [SQUARE]}},
        {"type": "Feature", "id": 7, "properties": {"name": "Werder"}, "geometry": {"type": "Polygon", "coordinates": [SQUARE]}},
        {"type": "Feature", "properties": {}, "geometry": {"type": "Polygon", "coordinates": [SQUARE]}},
        {"type": "Feature", "properties": {"GEN": "Punkt"}, "geometry": {"type": "Point", "coordinates": [13.0, 52.0]}},
        "not a feature",
    )
    features = features_from_geojson(payload, name_properties=["GEN", "name"], id_property="AGS")

    assert [(f.id, f.name) for f in features] == [
        ("12054000", "Potsdam"),
        ("7", "Werder"),
        ("feature-2", "feature-2"),
    ]
    assert features[0].attributes["GEN"] == "Potsdam"
    assert features[0].polygons[0][0][0] == (13.0, 52.0)


def test_features_from_geojson_requires_a_feature_collection():
    with pytest.raises(ValueError, match="FeatureCollection"):
        features_from_geojson({"type": "Feature"}, name_properties=["GEN"])


def test_load_boundaries_reads_a_file(tmp_path):
    path = tmp_path / "gemeinden.geojson"
    path.write_text(
        json.dumps(
            _collection(
                {"type": "Feature", "properties": {"GEN": "Potsdam"}, "geometry": {"type": "Polygon", "coordinates": [SQUARE, HOLE]}},
            )
        ),
        encoding="utf-8",
    )
    features = load_boundaries(path)
    assert len(features) == 1
    assert features[0].name == "Potsdam"
    assert len(features[0].polygons[0]) == 2
