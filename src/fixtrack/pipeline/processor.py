"""
Fix processor: the orchestrator of the pipeline.

One processor per tracked device. It owns the rolling state (last accepted fix, last
smoothed speed/heading, last accepted timestamp) and turns each accepted raw fix into
exactly one `TelemetryRecord`:

    throttle -> speed (reported or derived) -> smoothing -> motion status -> heading

The processor never blocks and performs no I/O; scheduling, sources and sinks belong
to the caller (see `fixtrack.tracking.session`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from fixtrack.config.overrides import apply_settings_overrides
from fixtrack.config.settings import PipelineSettings, Settings, get_settings
from fixtrack.core.geo import distance_3d_m
from fixtrack.core.smoothing import low_pass
from fixtrack.core.time import ms_to_iso
from fixtrack.domain.models import MotionStatus, RawFix, TelemetryRecord
from fixtrack.pipeline.heading import HeadingResolution, resolve_heading
from fixtrack.pipeline.motion import classify_motion

logger = logging.getLogger(__name__)


@dataclass
class ProcessorState:
    """Rolling state; a fresh instance means "no fix accepted yet"."""

    last_fix: RawFix | None = None
    last_smoothed_speed: float | None = None
    last_smoothed_heading: float | None = None
    last_accepted_timestamp: int | None = None
    last_status: MotionStatus | None = None


@dataclass(frozen=True)
class FixOutcome:
    """Everything the processor worked out for one accepted fix."""

    record: TelemetryRecord
    raw_speed: float
    distance_m: float | None
    heading: HeadingResolution


class FixProcessor:
    def __init__(self, settings: PipelineSettings | None = None) -> None:
        self.settings = settings or get_settings().pipeline
        self._state = ProcessorState()

    @property
    def state(self) -> ProcessorState:
        return self._state

    def reset(self) -> None:
        self._state = ProcessorState()

    def is_throttled(self, raw: RawFix) -> bool:
        last_ts = self._state.last_accepted_timestamp
        if last_ts is None:
            return False
        # Accepted timestamps strictly increase, even with a zero interval.
        if raw.timestamp <= last_ts:
            return True
        return raw.timestamp - last_ts < self.settings.throttle_interval_ms

    def process(self, raw: RawFix, aux_heading: float | None = None) -> TelemetryRecord | None:
        """Run one fix through the pipeline; None when the throttle drops it."""
        outcome = self.step(raw, aux_heading)
        return outcome.record if outcome is not None else None

    def step(self, raw: RawFix, aux_heading: float | None = None) -> FixOutcome | None:
        if self.is_throttled(raw):
            logger.debug(
                "Dropping fix at %s (last accepted %s)", raw.timestamp, self._state.last_accepted_timestamp
            )
            return None

        cfg = self.settings
        state = self._state
        prev = state.last_fix

        distance = None
        if prev is not None:
            distance = distance_3d_m(
                prev,
                raw,
                altitude_a=prev.altitude,
                altitude_b=raw.altitude,
                radius_m=cfg.earth_radius_meters,
            )

        raw_speed = self._raw_speed(raw, prev, distance)
        speed = max(0.0, low_pass(raw_speed, state.last_smoothed_speed, cfg.smoothing_alpha))

        status = classify_motion(
            speed,
            moving_speed_threshold=cfg.moving_speed_threshold,
            stop_speed_threshold=cfg.stop_speed_threshold,
            previous=state.last_status,
        )

        heading = resolve_heading(
            raw,
            status=status,
            previous_fix=prev,
            held_heading=state.last_smoothed_heading,
            aux_heading=aux_heading,
            alpha=cfg.smoothing_alpha,
        )

        record = TelemetryRecord(
            latitude=raw.latitude,
            longitude=raw.longitude,
            altitude=raw.altitude,
            accuracy=raw.accuracy,
            speed=speed,
            heading=heading.heading,
            status=status,
            timestamp=ms_to_iso(raw.timestamp),
        )

        # Swap in the successor state in one assignment so no partial update is observable.
        self._state = ProcessorState(
            last_fix=raw,
            last_smoothed_speed=speed,
            last_smoothed_heading=heading.heading,
            last_accepted_timestamp=raw.timestamp,
            last_status=status,
        )
        return FixOutcome(record=record, raw_speed=raw_speed, distance_m=distance, heading=heading)

    def _raw_speed(self, raw: RawFix, prev: RawFix | None, distance: float | None) -> float:
        if raw.speed is not None:
            return raw.speed
        if prev is None or distance is None:
            return 0.0
        dt = (raw.timestamp - prev.timestamp) / 1000
        if dt <= 0:
            return 0.0
        return distance / dt


@dataclass
class FixProcessorPool:
    """Independent processors keyed by device id (no state is shared between devices)."""

    settings: Settings = field(default_factory=get_settings)
    overrides: dict[str, Mapping[str, Any]] = field(default_factory=dict)
    _processors: dict[str, FixProcessor] = field(default_factory=dict, init=False, repr=False)

    def get(self, device_id: str) -> FixProcessor:
        processor = self._processors.get(device_id)
        if processor is None:
            device_settings = apply_settings_overrides(self.settings, self.overrides.get(device_id))
            processor = FixProcessor(device_settings.pipeline)
            self._processors[device_id] = processor
        return processor

    def process(self, device_id: str, raw: RawFix, aux_heading: float | None = None) -> TelemetryRecord | None:
        return self.get(device_id).process(raw, aux_heading)

    def discard(self, device_id: str) -> None:
        self._processors.pop(device_id, None)

    def devices(self) -> list[str]:
        return sorted(self._processors)
