"""
API routes.

Endpoints:
- POST   `/api/analysis`: stateless analysis of one point (buffer + result set).
- GET    `/api/boundaries`: loaded boundary count and names.
- GET    `/api/session`: state, active point and latest report of the shared session.
- PUT    `/api/session/point`: set the active point (triggers an analysis).
- PATCH  `/api/session/point`: move and/or resize the active point.
- DELETE `/api/session/point`: clear the active point and its results.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from eegshare.analysis.apportion import run_analysis
from eegshare.analysis.session import AnalysisSession, NoActivePoint
from eegshare.boundaries.loader import load_boundaries
from eegshare.config.overrides import apply_settings_overrides
from eegshare.config.settings import get_settings
from eegshare.domain.models import AnalysisPoint, AnalysisReport, BoundaryFeature, GeoPoint, IntersectionResult
from eegshare.geometry.errors import InvalidRadius

router = APIRouter()


class AnalysisRequest(BaseModel):
    center: GeoPoint
    radius_m: float | None = None
    label: str = ""
    settings_overrides: dict[str, Any] | None = None


class SetPointRequest(BaseModel):
    center: GeoPoint
    radius_m: float | None = None
    label: str = ""


class UpdatePointRequest(BaseModel):
    center: GeoPoint | None = None
    radius_m: float | None = None


class SessionResponse(BaseModel):
    state: str
    point: AnalysisPoint | None = None
    report: AnalysisReport | None = None
    results: list[IntersectionResult] = Field(default_factory=list)


@lru_cache
def _features() -> tuple[BoundaryFeature, ...]:
    settings = get_settings()
    return tuple(
        load_boundaries(
            settings.boundaries.path,
            name_properties=settings.boundaries.name_properties,
            id_property=settings.boundaries.id_property,
            missing_ok=True,
        )
    )


@lru_cache
def _session() -> AnalysisSession:
    # Requests wait for their own trigger, so the shared session runs synchronously.
    return AnalysisSession(_features(), settings=get_settings().analysis, background=False)


def _bad_request(code: str, exc: Exception) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": code, "message": str(exc)})


def _session_payload(session: AnalysisSession) -> SessionResponse:
    return SessionResponse(
        state=session.state,
        point=session.active_point,
        report=session.report,
        results=session.get_results(),
    )


@router.post("/api/analysis", response_model=AnalysisReport)
def post_analysis(req: AnalysisRequest) -> AnalysisReport:
    """Build the buffer around `center` and return the apportioned result set."""
    try:
        settings = apply_settings_overrides(get_settings(), req.settings_overrides)
    except ValueError as e:
        raise _bad_request("VALIDATION_ERROR", e) from e

    radius = req.radius_m if req.radius_m is not None else settings.analysis.default_radius_m
    point = AnalysisPoint(center=req.center, radius_m=radius, label=req.label)
    try:
        return run_analysis(point, _features(), settings.analysis)
    except InvalidRadius as e:
        raise _bad_request("INVALID_RADIUS", e) from e


@router.get("/api/boundaries")
def get_boundaries() -> dict:
    features = _features()
    return {
        "count": len(features),
        "boundaries": [{"id": f.id, "name": f.name} for f in features],
    }


@router.get("/api/session", response_model=SessionResponse)
def get_session() -> SessionResponse:
    return _session_payload(_session())


@router.put("/api/session/point", response_model=SessionResponse)
def put_session_point(req: SetPointRequest) -> SessionResponse:
    session = _session()
    radius = req.radius_m if req.radius_m is not None else get_settings().analysis.default_radius_m
    try:
        session.set_active_point(req.center, radius, req.label)
    except InvalidRadius as e:
        raise _bad_request("INVALID_RADIUS", e) from e
    return _session_payload(session)


@router.patch("/api/session/point", response_model=SessionResponse)
def patch_session_point(req: UpdatePointRequest) -> SessionResponse:
    session = _session()
    try:
        if req.center is not None:
            session.move_point(req.center)
        if req.radius_m is not None:
            session.resize_point(req.radius_m)
    except NoActivePoint as e:
        raise _bad_request("NO_ACTIVE_POINT", e) from e
    except InvalidRadius as e:
        raise _bad_request("INVALID_RADIUS", e) from e
    return _session_payload(session)


@router.delete("/api/session/point", response_model=SessionResponse)
def delete_session_point() -> SessionResponse:
    session = _session()
    session.clear_active_point()
    return _session_payload(session)
