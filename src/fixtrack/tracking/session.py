"""
Location sharing session.

The pipeline core exposes a pure `process` entry point; this module is the timer that
drives it. A session polls its fix source every `poll_interval_seconds`, runs each fix
through the device's processor and hands emitted records to the sink. One fix is in
flight at a time, so the processor never sees concurrent calls.

Failures never stop the loop:
- a source failure skips the tick,
- a sink failure (transport error, error status, undecodable reply) is logged and
  recorded in `last_error`; the record is not retried.
"""

from __future__ import annotations

import logging
import time
from collections import deque

import httpx

from fixtrack.config.settings import Settings, get_settings
from fixtrack.core.time import local_clock
from fixtrack.domain.models import TelemetryRecord
from fixtrack.pipeline.processor import FixProcessor
from fixtrack.sources.fixes import FixSource, FixSourceError, OrientationSource
from fixtrack.transport.sink import TelemetrySink

logger = logging.getLogger(__name__)

SHARE_FAILED_MESSAGE = "Failed to share location."


def format_share_message(record: TelemetryRecord, timestamp_ms: int) -> str:
    return (
        f"Shared at {local_clock(timestamp_ms)}: Lat {record.latitude:.5f}, Lon {record.longitude:.5f}, "
        f"Speed {record.speed:.1f} m/s ({record.status.value}), "
        f"Heading {record.heading:.1f}°"
    )


class TrackingSession:
    def __init__(
        self,
        *,
        source: FixSource,
        sink: TelemetrySink,
        processor: FixProcessor | None = None,
        orientation: OrientationSource | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.source = source
        self.sink = sink
        self.processor = processor or FixProcessor(self.settings.pipeline)
        self.orientation = orientation

        self.is_sharing = False
        self.waiting_for_first_fix = False
        self.last_record: TelemetryRecord | None = None
        self.last_error: str | None = None
        self.messages: deque[str] = deque(maxlen=self.settings.tracking.message_history)

    @property
    def device_id(self) -> str | None:
        return self.settings.tracking.device_id

    @property
    def bus_number(self) -> str | None:
        return self.settings.tracking.bus_number

    def start(self) -> None:
        self.last_error = None
        self.waiting_for_first_fix = True
        self.is_sharing = True
        logger.info("Started sharing for device=%s bus=%s", self.device_id, self.bus_number)

    def stop(self) -> None:
        self.is_sharing = False
        logger.info("Stopped sharing for device=%s", self.device_id)

    def poll_once(self) -> TelemetryRecord | None:
        """One timer tick: read, process, share. Returns the shared record, if any."""
        try:
            fix = self.source.read()
        except FixSourceError as exc:
            logger.warning("Polling error: %s", exc)
            self.last_error = f"Location error: {exc}"
            return None

        aux_heading = self.orientation.heading() if self.orientation is not None else None
        record = self.processor.process(fix, aux_heading)
        if record is None:
            return None

        self.waiting_for_first_fix = False
        self.last_record = record

        try:
            self.sink.send(record, device_id=self.device_id, bus_number=self.bus_number)
        except (httpx.HTTPError, ValueError) as exc:
            # ValueError: the collector answered 2xx with a body that is not JSON.
            logger.error("Location share error: %s", exc)
            self.last_error = SHARE_FAILED_MESSAGE
            return record

        message = format_share_message(record, fix.timestamp)
        self.messages.appendleft(message)
        logger.info(message)
        return record

    def run(self, *, max_ticks: int | None = None) -> int:
        """Poll until `stop()`, `max_ticks` ticks, or an exhausted replay source.

        Returns the number of ticks run.
        """
        interval = float(self.settings.tracking.poll_interval_seconds)
        self.start()
        ticks = 0
        next_at = time.monotonic()
        while self.is_sharing and (max_ticks is None or ticks < max_ticks):
            self.poll_once()
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            if getattr(self.source, "exhausted", False):
                break

            next_at += interval
            wait = next_at - time.monotonic()
            if wait > 0:
                time.sleep(wait)
            else:
                # Fell behind (slow sink); re-anchor instead of bursting to catch up.
                next_at = time.monotonic()
        self.stop()
        return ticks
