"""
Telemetry sinks.

A sink receives every emitted `TelemetryRecord` together with the identity of the
sharing device. Delivery is the sink's business; the pipeline never retries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from fixtrack.config.settings import CollectorSettings
from fixtrack.core.http import post_json
from fixtrack.domain.models import LocationShare, TelemetryRecord

logger = logging.getLogger(__name__)


class TelemetrySink(Protocol):
    def send(self, record: TelemetryRecord, *, device_id: str | None, bus_number: str | None) -> None: ...


class HttpTelemetrySink:
    """POST each record as JSON to the collector's location endpoint.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
    """

    def __init__(self, collector: CollectorSettings) -> None:
        self.collector = collector

    def send(self, record: TelemetryRecord, *, device_id: str | None, bus_number: str | None) -> None:
        share = LocationShare.from_record(record, device_id=device_id, bus_number=bus_number)
        url = self.collector.location_url
        logger.debug("Posting location to %s for device=%s", url, device_id)
        post_json(url, payload=share.to_payload(), timeout_seconds=self.collector.timeout_seconds)


@dataclass
class CollectingSink:
    """In-memory sink for dry runs and tests."""

    shares: list[LocationShare] = field(default_factory=list)

    def send(self, record: TelemetryRecord, *, device_id: str | None, bus_number: str | None) -> None:
        self.shares.append(LocationShare.from_record(record, device_id=device_id, bus_number=bus_number))
