"""
Heading resolution.

Picks the raw heading candidate for a fix, in priority order:

1. the heading reported by the device,
2. the bearing from the previous accepted fix (undefined on the first fix or when
   the device has not moved),
3. the heading already held by the processor,
4. an auxiliary orientation reading (compass),
5. 0 degrees.

The candidate is then smoothed against the previous smoothed heading, unless the
device is stopped: a stopped device keeps its held heading so GPS jitter cannot
swing it around.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum

from fixtrack.core.geo import bearing_deg, normalize_heading
from fixtrack.core.smoothing import DEFAULT_ALPHA, low_pass
from fixtrack.domain.models import MotionStatus, RawFix
from fixtrack.pipeline.motion import hold_heading

logger = logging.getLogger(__name__)


class HeadingSource(str, Enum):
    DEVICE = "device"
    BEARING = "bearing"
    HELD = "held"
    ORIENTATION = "orientation"
    NONE = "none"


@dataclass(frozen=True)
class HeadingResolution:
    """Chosen raw candidate, where it came from, and the heading to report."""

    candidate: float
    source: HeadingSource
    heading: float


def select_heading_candidate(
    fix: RawFix,
    *,
    previous_fix: RawFix | None,
    held_heading: float | None,
    aux_heading: float | None = None,
) -> tuple[float, HeadingSource]:
    """Walk the priority chain and return `(candidate, source)`."""
    if fix.heading is not None:
        return fix.heading, HeadingSource.DEVICE

    if previous_fix is not None:
        bearing = bearing_deg(previous_fix, fix)
        if bearing is not None:
            return bearing, HeadingSource.BEARING

    if held_heading is not None:
        return held_heading, HeadingSource.HELD

    # Compass readings are unvalidated; a non-finite one carries no direction.
    if aux_heading is not None and math.isfinite(aux_heading):
        return normalize_heading(aux_heading), HeadingSource.ORIENTATION

    return 0.0, HeadingSource.NONE


def resolve_heading(
    fix: RawFix,
    *,
    status: MotionStatus,
    previous_fix: RawFix | None,
    held_heading: float | None,
    aux_heading: float | None = None,
    alpha: float = DEFAULT_ALPHA,
) -> HeadingResolution:
    candidate, source = select_heading_candidate(
        fix,
        previous_fix=previous_fix,
        held_heading=held_heading,
        aux_heading=aux_heading,
    )

    if hold_heading(status, held_heading):
        heading = held_heading
    else:
        heading = normalize_heading(low_pass(candidate, held_heading, alpha))

    logger.debug(
        "Heading candidate=%.1f source=%s reported=%.1f status=%s",
        candidate,
        source.value,
        heading,
        status.value,
    )
    return HeadingResolution(candidate=candidate, source=source, heading=heading)
