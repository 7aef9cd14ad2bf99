import math

import pytest
from starlette.testclient import TestClient

import eegshare.api.routes as routes
from eegshare.analysis.session import AnalysisSession
from eegshare.api.app import app
from eegshare.config.settings import AnalysisSettings
from eegshare.core.geo import EARTH_RADIUS_M
from eegshare.domain.models import BoundaryFeature

LAT0, LON0 = 52.52, 13.405


def _box(fid, name, west_m, east_m, half_height_m=4000):
    def lon(m):
        return LON0 + math.degrees(m / (EARTH_RADIUS_M * math.cos(math.radians(LAT0))))

    dlat = math.degrees(half_height_m / EARTH_RADIUS_M)
    w, e, s, n = lon(west_m), lon(east_m), LAT0 - dlat, LAT0 + dlat
    return BoundaryFeature(id=fid, name=name, polygons=[[[(w, s), (e, s), (e, n), (w, n)]]])


FEATURES = (_box("a", "Westdorf", -4000, 0), _box("b", "Ostdorf", 0, 4000))


@pytest.fixture
def client(monkeypatch):
    # Keep API tests independent of the boundary file on disk.
    session = AnalysisSession(FEATURES, settings=AnalysisSettings(background=False))
    monkeypatch.setattr(routes, "_features", lambda: FEATURES)
    monkeypatch.setattr(routes, "_session", lambda: session)
    with TestClient(app) as c:
        yield c


def test_post_analysis_returns_apportioned_results(client):
    resp = client.post("/api/analysis", json={"center": {"lat": LAT0, "lon": LON0}, "radius_m": 1000, "label": "WKA 1"})
    assert resp.status_code == 200
    data = resp.json()
    assert [r["feature_name"] for r in data["results"]] == ["Westdorf", "Ostdorf"]
    assert round(sum(r["share_percent"] for r in data["results"]), 2) == 100.0
    assert data["point"]["label"] == "WKA 1"
    assert len(data["buffer"]) == 65
    assert data["meta"]["candidates"] == 2


def test_post_analysis_uses_default_radius_and_overrides(client):
    resp = client.post(
        "/api/analysis",
        json={"center": {"lat": LAT0, "lon": LON0}, "settings_overrides": {"analysis": {"steps": 16}}},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["point"]["radius_m"] == 2500
    assert data["meta"]["steps"] == 16
    assert len(data["buffer"]) == 17


def test_post_analysis_rejects_bad_input(client):
    center = {"lat": LAT0, "lon": LON0}

    resp = client.post("/api/analysis", json={"center": center, "radius_m": 0})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INVALID_RADIUS"

    resp = client.post("/api/analysis", json={"center": center, "settings_overrides": {"boundaries": {"path": "x"}}})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "VALIDATION_ERROR"

    resp = client.post("/api/analysis", json={"center": {"lat": 95, "lon": 0}})
    assert resp.status_code == 422


def test_get_boundaries(client):
    resp = client.get("/api/boundaries")
    assert resp.status_code == 200
    assert resp.json() == {
        "count": 2,
        "boundaries": [{"id": "a", "name": "Westdorf"}, {"id": "b", "name": "Ostdorf"}],
    }


def test_session_lifecycle(client):
    assert client.get("/api/session").json()["state"] == "idle"

    resp = client.patch("/api/session/point", json={"radius_m": 500})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "NO_ACTIVE_POINT"

    resp = client.put("/api/session/point", json={"center": {"lat": LAT0, "lon": LON0 - 0.02}, "radius_m": 500})
    data = resp.json()
    assert resp.status_code == 200
    assert data["state"] == "analyzing"
    assert [r["feature_id"] for r in data["results"]] == ["a"]

    resp = client.patch("/api/session/point", json={"center": {"lat": LAT0, "lon": LON0}})
    assert [r["feature_id"] for r in resp.json()["results"]] == ["a", "b"]

    resp = client.patch("/api/session/point", json={"radius_m": -1})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INVALID_RADIUS"
    assert client.get("/api/session").json()["point"]["radius_m"] == 500

    resp = client.delete("/api/session/point")
    assert resp.json() == {"state": "idle", "point": None, "report": None, "results": []}


def test_missing_boundary_file_gives_empty_results(monkeypatch, tmp_path):
    from eegshare.config.settings import get_settings

    monkeypatch.setenv("EEGSHARE_BOUNDARIES_PATH", str(tmp_path / "missing.geojson"))
    for cached in (get_settings, routes._features, routes._session):
        cached.cache_clear()
    try:
        with TestClient(app) as c:
            resp = c.post("/api/analysis", json={"center": {"lat": LAT0, "lon": LON0}, "radius_m": 1000})
            assert resp.status_code == 200
            assert resp.json()["results"] == []

            resp = c.put("/api/session/point", json={"center": {"lat": LAT0, "lon": LON0}, "radius_m": 1000})
            assert resp.status_code == 200
            assert resp.json()["results"] == []
            assert c.get("/api/boundaries").json()["count"] == 0
    finally:
        for cached in (get_settings, routes._features, routes._session):
            cached.cache_clear()
