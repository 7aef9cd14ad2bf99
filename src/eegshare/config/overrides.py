"""
Per-request settings overrides.

`POST /api/analysis` may send `settings_overrides` to tune the buffer of a single
run. Only the `analysis` knobs listed below are accepted; paths (the boundary
file) and clipping tolerances are never overridable. The merged analysis section
is re-validated, so ranges such as `steps >= 8` still hold.
"""

from __future__ import annotations

from typing import Any, Mapping

from eegshare.config.settings import AnalysisSettings, Settings

ALLOWED_ANALYSIS_OVERRIDES = frozenset({"steps", "default_radius_m"})


def _analysis_overrides(overrides: Mapping[str, Any]) -> dict[str, Any]:
    for section in overrides:
        if section != "analysis":
            raise ValueError(f"settings_overrides contains a disallowed key: '{section}'")

    analysis = overrides["analysis"]
    if not isinstance(analysis, Mapping):
        raise ValueError("settings_overrides key 'analysis' must be a mapping")
    for key in analysis:
        if key not in ALLOWED_ANALYSIS_OVERRIDES:
            raise ValueError(f"settings_overrides contains a disallowed key: 'analysis.{key}'")
    return dict(analysis)


def apply_settings_overrides(settings: Settings, overrides: Mapping[str, Any] | None) -> Settings:
    """Return `settings` with the allowed analysis overrides applied (a new object)."""
    if not overrides:
        return settings

    analysis = AnalysisSettings.model_validate(
        {**settings.analysis.model_dump(), **_analysis_overrides(overrides)}
    )
    # The cached settings object is shared between requests; never mutate it.
    return settings.model_copy(update={"analysis": analysis})
