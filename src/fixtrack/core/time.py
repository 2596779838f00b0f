"""
Timestamp conversion.

Location sensors stamp fixes with device milliseconds since the Unix epoch. Telemetry
leaves the pipeline as an ISO-8601 UTC string with millisecond precision and a
trailing `Z` (the shape collectors already parse, e.g. `2026-01-05T02:00:00.000Z`).
"""

from __future__ import annotations

from datetime import datetime, timezone


def ms_to_datetime(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    seconds, millis = divmod(int(timestamp_ms), 1000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=millis * 1000)


def ms_to_iso(timestamp_ms: int) -> str:
    """Format epoch milliseconds as `YYYY-MM-DDTHH:MM:SS.mmmZ`."""
    dt = ms_to_datetime(timestamp_ms)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso_to_ms(value: str) -> int:
    """Parse an ISO-8601 datetime into epoch milliseconds.

    Notes:
    - Accepts a trailing `Z` (UTC) and converts it to `+00:00` for `fromisoformat`.
    - Naive values are treated as UTC.
    """
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    delta = dt - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def local_clock(timestamp_ms: int) -> str:
    """Render epoch milliseconds as a local wall-clock `HH:MM:SS` (activity messages)."""
    return ms_to_datetime(timestamp_ms).astimezone().strftime("%H:%M:%S")
