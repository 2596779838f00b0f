from __future__ import annotations

from math import atan2, cos, degrees, hypot, radians, sin, sqrt
from typing import Protocol

"""
Geodesy helpers.

Small-scale local geodesy on a spherical earth. Distances use the haversine formula,
bearings the forward-azimuth formula. Accuracy is good enough for consecutive fixes a
second or two apart; we do not try to be geodetically exact.
"""

WGS84_EQUATORIAL_RADIUS_M = 6_378_137.0


class Coordinate(Protocol):
    """Anything with `latitude`/`longitude` in decimal degrees (e.g. `RawFix`)."""

    latitude: float
    longitude: float


def distance_m(a: Coordinate, b: Coordinate, *, radius_m: float = WGS84_EQUATORIAL_RADIUS_M) -> float:
    """Compute great-circle distance in meters between two coordinates."""
    lat1 = radians(a.latitude)
    lat2 = radians(b.latitude)
    dlat = lat2 - lat1
    dlon = radians(b.longitude - a.longitude)

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Rounding can push `h` a hair outside [0, 1] for near-antipodal points.
    h = min(1.0, max(0.0, h))
    return 2 * radius_m * atan2(sqrt(h), sqrt(1 - h))


def bearing_deg(a: Coordinate, b: Coordinate) -> float | None:
    """Initial bearing from `a` to `b` in degrees, normalized into [0, 360).

    Returns None when both points coincide: the direction is undefined there and
    callers fall back to whatever heading they already hold.
    """
    if a.latitude == b.latitude and a.longitude == b.longitude:
        return None

    lat1 = radians(a.latitude)
    lat2 = radians(b.latitude)
    dlon = radians(b.longitude - a.longitude)

    y = sin(dlon) * cos(lat2)
    x = cos(lat1) * sin(lat2) - sin(lat1) * cos(lat2) * cos(dlon)
    if x == 0 and y == 0:
        return None
    return normalize_heading(degrees(atan2(y, x)))


def distance_3d_m(
    a: Coordinate,
    b: Coordinate,
    *,
    altitude_a: float | None = None,
    altitude_b: float | None = None,
    radius_m: float = WGS84_EQUATORIAL_RADIUS_M,
) -> float:
    """Great-circle distance combined with the altitude delta (Pythagorean).

    The altitude delta only counts when both altitudes are known.
    """
    surface = distance_m(a, b, radius_m=radius_m)
    if altitude_a is None or altitude_b is None:
        return surface
    return hypot(surface, altitude_b - altitude_a)


def normalize_heading(value: float) -> float:
    """Wrap a heading in degrees into [0, 360)."""
    out = value % 360.0
    # `-1e-15 % 360.0` rounds to 360.0.
    return 0.0 if out >= 360.0 else out
