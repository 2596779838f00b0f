# src/fixtrack/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/fixtrack/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `FIXTRACK_DEVICE_ID`, `FIXTRACK_COLLECTOR_URL`)
- an external YAML file via `FIXTRACK_CONFIG_PATH`

Design rule:
- Tuning knobs (throttle, smoothing, thresholds) live in YAML, not hard-coded in the pipeline.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from fixtrack.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `fixtrack.config`."""
    text = resources.files("fixtrack.config").joinpath(filename).read_text(encoding="utf-8")
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
    name: str = "fixtrack"
    log_level: str = "INFO"


class PipelineSettings(BaseModel):
    """Knobs of the fix processing pipeline."""

    throttle_interval_ms: int = Field(1000, ge=0)
    smoothing_alpha: float = Field(0.2, gt=0, le=1)
    moving_speed_threshold: float = Field(1.0, ge=0)
    earth_radius_meters: float = Field(6_378_137.0, gt=0)
    # Optional dead-band: once moving, stay moving until speed drops to this value.
    stop_speed_threshold: float | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _validate_dead_band(self) -> "PipelineSettings":
        if self.stop_speed_threshold is not None and self.stop_speed_threshold > self.moving_speed_threshold:
            raise ValueError("pipeline.stop_speed_threshold must not exceed pipeline.moving_speed_threshold")
        return self


class CollectorSettings(BaseModel):
    base_url: str = "http://localhost:5000"
    location_path: str = "/api/location"
    timeout_seconds: float = Field(15, gt=0)

    @property
    def location_url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.location_path.lstrip("/")


class TrackingSettings(BaseModel):
    poll_interval_seconds: float = Field(1.0, gt=0)
    message_history: int = Field(50, ge=0)
    device_id: str | None = None
    bus_number: str | None = None


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    collector: CollectorSettings = Field(default_factory=CollectorSettings)
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small; pipeline tuning belongs in YAML.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("FIXTRACK_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    collector_url = os.getenv("FIXTRACK_COLLECTOR_URL")
    if collector_url:
        data.setdefault("collector", {})["base_url"] = collector_url

    device_id = os.getenv("FIXTRACK_DEVICE_ID")
    if device_id:
        data.setdefault("tracking", {})["device_id"] = device_id

    bus_number = os.getenv("FIXTRACK_BUS_NUMBER")
    if bus_number:
        data.setdefault("tracking", {})["bus_number"] = bus_number

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("FIXTRACK_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
