from __future__ import annotations

import pytest

# The real packaged defaults, so the override helper sees the production shape.
from eegshare.config.settings import get_settings

from eegshare.config.overrides import apply_settings_overrides


def test_apply_settings_overrides_returns_same_object_when_none():
    settings = get_settings()

    # No overrides: fast path hands back the cached object itself.
    assert apply_settings_overrides(settings, None) is settings
    assert apply_settings_overrides(settings, {}) is settings


def test_apply_settings_overrides_can_override_allowed_analysis_knobs():
    settings = get_settings()

    out = apply_settings_overrides(settings, {"analysis": {"steps": 128, "default_radius_m": 1800}})

    assert out.analysis.steps == 128
    assert out.analysis.default_radius_m == 1800
    # The cached settings are shared between requests and must stay untouched.
    assert settings.analysis.steps == 64
    assert out.boundaries == settings.boundaries


def test_apply_settings_overrides_rejects_disallowed_keys_with_clear_path():
    settings = get_settings()

    # File paths are never overridable per request.
    with pytest.raises(ValueError, match=r"disallowed key: 'boundaries'"):
        apply_settings_overrides(settings, {"boundaries": {"path": "/etc/passwd"}})

    with pytest.raises(ValueError, match=r"disallowed key: 'app'"):
        apply_settings_overrides(settings, {"analysis": {"steps": 32}, "app": {"log_level": "DEBUG"}})

    with pytest.raises(ValueError, match=r"analysis\.noise_floor_m2"):
        apply_settings_overrides(settings, {"analysis": {"noise_floor_m2": 1.0}})


def test_apply_settings_overrides_rejects_wrong_value_shapes_for_restricted_subtrees():
    settings = get_settings()

    with pytest.raises(ValueError, match=r"settings_overrides key 'analysis' must be a mapping"):
        apply_settings_overrides(settings, {"analysis": 1})


def test_apply_settings_overrides_revalidates_ranges():
    settings = get_settings()

    # pydantic.ValidationError is a ValueError subclass.
    with pytest.raises(ValueError):
        apply_settings_overrides(settings, {"analysis": {"steps": 4}})


def test_apply_settings_overrides_keeps_unlisted_analysis_knobs():
    settings = get_settings()

    out = apply_settings_overrides(settings, {"analysis": {"steps": 16}})

    assert out is not settings
    assert out.analysis.default_radius_m == settings.analysis.default_radius_m
    assert out.analysis.snap_degrees == settings.analysis.snap_degrees
    assert out.app == settings.app


def test_env_overrides_boundaries_path_and_log_level(monkeypatch):
    monkeypatch.setenv("EEGSHARE_BOUNDARIES_PATH", "/tmp/other.geojson")
    monkeypatch.setenv("EEGSHARE_LOG_LEVEL", "DEBUG")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.boundaries.path == "/tmp/other.geojson"
        assert settings.app.log_level == "DEBUG"
    finally:
        get_settings.cache_clear()


def test_packaged_defaults():
    settings = get_settings()
    assert settings.analysis.default_radius_m == 2500
    assert settings.analysis.steps == 64
    assert settings.analysis.default_label == "WKA"
    assert settings.boundaries.name_properties == ["GEN", "name"]
