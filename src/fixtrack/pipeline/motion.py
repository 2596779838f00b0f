"""
Motion classification.

A device is moving when its smoothed speed exceeds `moving_speed_threshold`. With no
`stop_speed_threshold` the rule is a memoryless threshold, so speeds hovering around
the threshold flap between states on every fix. Setting `stop_speed_threshold` below
the moving threshold adds a dead-band: a moving device only stops once its speed has
dropped to the stop threshold.
"""

from __future__ import annotations

from fixtrack.domain.models import MotionStatus


def classify_motion(
    smoothed_speed: float,
    *,
    moving_speed_threshold: float = 1.0,
    stop_speed_threshold: float | None = None,
    previous: MotionStatus | None = None,
) -> MotionStatus:
    if smoothed_speed > moving_speed_threshold:
        return MotionStatus.MOVING
    if (
        stop_speed_threshold is not None
        and previous is MotionStatus.MOVING
        and smoothed_speed > stop_speed_threshold
    ):
        return MotionStatus.MOVING
    return MotionStatus.STOPPED


def hold_heading(status: MotionStatus, held_heading: float | None) -> bool:
    """Whether the reported heading should stay pinned to `held_heading`."""
    return status is MotionStatus.STOPPED and held_heading is not None
