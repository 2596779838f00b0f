"""
Domain models (Pydantic).

These types represent the stable "contract" between the tracker's layers:
- sensor input (`RawFix`)
- pipeline output (`TelemetryRecord`)
- the collector wire payload (`LocationShare`)

Keeping these models in one place helps:
- validation (reject out-of-range coordinates at ingestion, before any math runs),
- consistent JSON output across CLI and collector posts.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fixtrack.core.geo import normalize_heading


class MotionStatus(str, Enum):
    MOVING = "moving"
    STOPPED = "stopped"


def _missing_if_nan(value: Any) -> Any:
    # Sensors report NaN (not null) for heading when stationary.
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


class RawFix(BaseModel):
    """One raw position sample from a location sensor.

    `speed` and `heading` are optional: many receivers only report them while moving.
    `timestamp` is the device clock in epoch milliseconds.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    altitude: float | None = None
    accuracy: float | None = Field(default=None, ge=0)
    speed: float | None = None
    heading: float | None = None
    timestamp: int

    @field_validator("speed", "heading", "altitude", "accuracy", mode="before")
    @classmethod
    def _nan_is_missing(cls, value: Any) -> Any:
        return _missing_if_nan(value)

    @field_validator("speed")
    @classmethod
    def _negative_speed_is_missing(cls, value: float | None) -> float | None:
        if value is not None and value < 0:
            return None
        return value

    @field_validator("heading")
    @classmethod
    def _normalize_heading(cls, value: float | None) -> float | None:
        if value is None:
            return None
        return normalize_heading(value)


class TelemetryRecord(BaseModel):
    """Stabilized motion telemetry for one accepted fix."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    altitude: float | None = None
    accuracy: float | None = None
    speed: float = Field(..., ge=0)
    heading: float = Field(..., ge=0, lt=360)
    status: MotionStatus
    timestamp: str


class LocationShare(TelemetryRecord):
    """Collector payload: a telemetry record tagged with the sharing device."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bus_number: str | None = Field(default=None, alias="busNumber")
    device_id: str | None = Field(default=None, alias="deviceId")

    @classmethod
    def from_record(
        cls,
        record: TelemetryRecord,
        *,
        device_id: str | None,
        bus_number: str | None,
    ) -> "LocationShare":
        return cls(bus_number=bus_number, device_id=device_id, **record.model_dump())

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
