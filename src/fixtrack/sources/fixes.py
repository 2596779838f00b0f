"""
Raw-fix and orientation sources.

Sources are the pipeline's upstream collaborators. A fix source may fail on any tick
(no satellite lock, sensor timeout); it reports that by raising `FixSourceError` and
the caller simply skips the tick.

`ReplayFixSource` feeds recorded fixes from disk:
- JSON Lines: one object per line with `RawFix` field names
- CSV: header `latitude,longitude,altitude,accuracy,speed,heading,timestamp`; empty cells
  mean "not reported"

`timestamp` may be epoch milliseconds or an ISO-8601 string.
"""

from __future__ import annotations

import csv
import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from fixtrack.core.time import parse_iso_to_ms
from fixtrack.domain.models import RawFix

logger = logging.getLogger(__name__)


class FixSourceError(RuntimeError):
    """The source could not produce a fix for this tick."""


class FixSource(Protocol):
    def read(self) -> RawFix: ...


class OrientationSource(Protocol):
    def heading(self) -> float | None: ...


@dataclass(frozen=True)
class StaticOrientationSource:
    """Fixed compass reading (e.g. a parked vehicle's known orientation)."""

    value: float | None = None

    def heading(self) -> float | None:
        return self.value


def _coerce_timestamp(value: Any) -> int:
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
        return parse_iso_to_ms(text)
    return int(value)


def parse_fix(row: dict[str, Any]) -> RawFix:
    """Validate one recorded row into a `RawFix` (empty strings count as missing)."""
    data = {k: v for k, v in row.items() if v is not None and v != ""}
    if "timestamp" in data:
        data["timestamp"] = _coerce_timestamp(data["timestamp"])
    return RawFix.model_validate(data)


def _iter_jsonl(path: Path) -> Iterator[str]:
    with path.open(encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                yield line


def _decode_jsonl_row(line: str) -> dict[str, Any]:
    obj = json.loads(line)
    if not isinstance(obj, dict):
        raise ValueError("expected a JSON object per line")
    return obj


def _iter_csv(path: Path) -> Iterator[dict[str, Any]]:
    with path.open(encoding="utf-8", newline="") as f:
        yield from csv.DictReader(f)


def iter_recorded_fixes(path: str | Path) -> Iterator[RawFix]:
    """Yield validated fixes from a JSONL or CSV recording; invalid rows are skipped."""
    p = Path(path)
    rows: Iterator[Any] = _iter_csv(p) if p.suffix.lower() == ".csv" else _iter_jsonl(p)
    for i, row in enumerate(rows, start=1):
        try:
            if isinstance(row, str):
                row = _decode_jsonl_row(row)
            fix = parse_fix(row)
        except ValueError as exc:
            # JSONDecodeError and pydantic's ValidationError are both ValueErrors.
            logger.warning("Skipping invalid fix #%s in %s: %s", i, p, exc)
            continue
        yield fix


class ReplayFixSource:
    """Serve recorded fixes one per `read()`, like a sensor polled on a timer."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._fixes = iter_recorded_fixes(self.path)
        self.exhausted = False

    def read(self) -> RawFix:
        try:
            return next(self._fixes)
        except StopIteration:
            self.exhausted = True
            raise FixSourceError(f"No more fixes in {self.path}") from None
        except OSError as exc:
            self.exhausted = True
            raise FixSourceError(f"Cannot read {self.path}: {exc}") from exc
