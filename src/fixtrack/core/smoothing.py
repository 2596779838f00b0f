"""
Exponential (single-pole low-pass) smoothing.

`alpha` weights the newest sample: higher favors responsiveness, lower favors stability.
"""

from __future__ import annotations

DEFAULT_ALPHA = 0.2


def low_pass(current: float, previous: float | None, alpha: float = DEFAULT_ALPHA) -> float:
    """Blend `current` into `previous`; with no history the sample passes through."""
    if previous is None:
        return current
    if not 0 < alpha <= 1:
        raise ValueError("alpha must be in (0, 1]")
    return alpha * current + (1 - alpha) * previous
