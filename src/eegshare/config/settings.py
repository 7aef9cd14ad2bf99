# src/eegshare/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/eegshare/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `EEGSHARE_LOG_LEVEL`, `EEGSHARE_BOUNDARIES_PATH`)
- an external YAML file via `EEGSHARE_CONFIG_PATH`

Design rule:
- Tuning knobs live in YAML, not hard-coded in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from eegshare.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `eegshare.config`."""
    text = resources.files("eegshare.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "EEGShare"
    log_level: str = "INFO"


class BoundariesSettings(BaseModel):
    path: str = "data/boundaries/gemeinden.geojson"
    # First non-empty property wins when resolving a feature's display name.
    name_properties: list[str] = Field(default_factory=lambda: ["GEN", "name"])
    id_property: str | None = "AGS"


class AnalysisSettings(BaseModel):
    default_radius_m: float = Field(2500, gt=0)
    default_label: str = "WKA"
    steps: int = Field(64, ge=8, le=4096)
    noise_floor_m2: float = Field(1e-6, ge=0)
    snap_degrees: float = Field(1e-9, ge=0)
    background: bool = True


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    boundaries: BoundariesSettings = Field(default_factory=BoundariesSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)
    log_level = os.getenv("EEGSHARE_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    boundaries_path = os.getenv("EEGSHARE_BOUNDARIES_PATH")
    if boundaries_path:
        data.setdefault("boundaries", {})["path"] = boundaries_path

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("EEGSHARE_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
