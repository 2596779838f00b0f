import math

import pytest

from fixtrack.config.settings import PipelineSettings, get_settings
from fixtrack.domain.models import MotionStatus, RawFix
from fixtrack.pipeline.heading import HeadingSource
from fixtrack.pipeline.processor import FixProcessor, FixProcessorPool, ProcessorState


def _fix(lat=0.0, lon=0.0, *, t, speed=None, heading=None, altitude=None) -> RawFix:
    return RawFix(latitude=lat, longitude=lon, timestamp=t, speed=speed, heading=heading, altitude=altitude)


def test_defaults_come_from_packaged_config():
    processor = FixProcessor()
    assert processor.settings == get_settings().pipeline
    assert processor.settings.throttle_interval_ms == 1000
    assert processor.settings.smoothing_alpha == pytest.approx(0.2)
    assert processor.state == ProcessorState()


def test_first_fix_passes_through_unsmoothed():
    processor = FixProcessor(PipelineSettings())
    record = processor.process(_fix(t=0, speed=5.0, heading=90.0))

    assert record is not None
    assert record.speed == 5.0
    assert record.heading == 90.0
    assert record.status is MotionStatus.MOVING
    assert record.timestamp == "1970-01-01T00:00:00.000Z"


def test_derives_speed_and_bearing_when_sensor_omits_them():
    processor = FixProcessor(PipelineSettings())
    processor.process(_fix(t=0, speed=5.0, heading=90.0))
    outcome = processor.step(_fix(0.0001, 0.0, t=1000))

    assert outcome is not None
    assert outcome.distance_m == pytest.approx(11.13, abs=0.01)
    assert outcome.raw_speed == pytest.approx(11.13, abs=0.01)
    assert outcome.record.speed == pytest.approx(6.226, abs=1e-3)
    assert outcome.record.status is MotionStatus.MOVING
    assert outcome.heading.source is HeadingSource.BEARING
    assert outcome.heading.candidate == pytest.approx(0.0, abs=1e-9)
    # Bearing candidate 0 smoothed against the held 90.
    assert outcome.record.heading == pytest.approx(72.0)


def test_identical_timestamp_is_dropped():
    processor = FixProcessor(PipelineSettings())
    assert processor.process(_fix(t=0, speed=2.0)) is not None
    assert processor.process(_fix(t=0, speed=2.0)) is None


def test_throttled_fix_leaves_state_untouched():
    first = _fix(t=10_000, speed=3.0, heading=10.0)
    throttled = _fix(0.01, 0.01, t=10_500, speed=30.0, heading=200.0)

    a = FixProcessor(PipelineSettings())
    b = FixProcessor(PipelineSettings())
    a.process(first)
    b.process(first)
    before = a.state

    assert a.process(throttled) is None
    assert a.state is before
    assert a.state == b.state


def test_custom_throttle_interval():
    processor = FixProcessor(PipelineSettings(throttle_interval_ms=2000))
    processor.process(_fix(t=0, speed=0.0))
    assert processor.process(_fix(t=1500, speed=0.0)) is None
    assert processor.process(_fix(t=2000, speed=0.0)) is not None


def test_zero_throttle_still_requires_increasing_timestamps():
    processor = FixProcessor(PipelineSettings(throttle_interval_ms=0))
    processor.process(_fix(t=5000, speed=0.0))
    assert processor.process(_fix(t=5000, speed=0.0)) is None
    assert processor.process(_fix(t=4000, speed=0.0)) is None
    assert processor.process(_fix(t=5001, speed=0.0)) is not None


def test_first_fix_without_speed_reports_zero_and_stopped():
    processor = FixProcessor(PipelineSettings())
    record = processor.process(_fix(t=0))
    assert record is not None
    assert record.speed == 0.0
    assert record.status is MotionStatus.STOPPED
    assert record.heading == 0.0


def test_orientation_heading_used_on_first_fix():
    processor = FixProcessor(PipelineSettings())
    record = processor.process(_fix(t=0), aux_heading=135.0)
    assert record is not None
    assert record.heading == 135.0


def test_stopped_device_keeps_previous_heading():
    processor = FixProcessor(PipelineSettings())
    processor.process(_fix(t=0, speed=0.375, heading=90.0))
    record = processor.process(_fix(t=1000, speed=0.0, heading=45.0))

    assert record is not None
    assert record.speed == pytest.approx(0.3)
    assert record.status is MotionStatus.STOPPED
    assert record.heading == 90.0


def test_heading_hold_survives_jitter_while_stopped():
    processor = FixProcessor(PipelineSettings(smoothing_alpha=1.0))
    moving = processor.process(_fix(t=0, speed=5.0, heading=90.0))
    assert moving is not None and moving.status is MotionStatus.MOVING

    jitter = [
        _fix(t=1000, speed=0.0, heading=180.0),
        _fix(0.00001, 0.0, t=2000, speed=0.0),
        _fix(0.00001, 0.00002, t=3000, speed=0.0, heading=300.0),
        _fix(0.0, 0.00002, t=4000, speed=0.0),
    ]
    headings = []
    for fix in jitter:
        record = processor.process(fix)
        assert record is not None
        assert record.status is MotionStatus.STOPPED
        headings.append(record.heading)

    assert headings == [90.0, 90.0, 90.0, 90.0]
    assert processor.state.last_smoothed_heading == 90.0


def test_altitude_change_counts_toward_derived_speed():
    processor = FixProcessor(PipelineSettings(smoothing_alpha=1.0))
    processor.process(_fix(t=0, altitude=100.0))
    outcome = processor.step(_fix(t=2000, altitude=110.0))

    assert outcome is not None
    assert outcome.distance_m == pytest.approx(10.0)
    assert outcome.raw_speed == pytest.approx(5.0)
    # No horizontal movement: the heading falls back to the held value.
    assert outcome.heading.source is HeadingSource.HELD


def test_state_advances_after_each_accepted_fix():
    processor = FixProcessor(PipelineSettings())
    fix = _fix(1.0, 2.0, t=123_456, speed=2.0, heading=30.0)
    record = processor.process(fix)

    assert processor.state == ProcessorState(
        last_fix=fix,
        last_smoothed_speed=2.0,
        last_smoothed_heading=30.0,
        last_accepted_timestamp=123_456,
        last_status=MotionStatus.MOVING,
    )
    assert record is not None
    assert record.timestamp == "1970-01-01T00:02:03.456Z"


def test_outputs_stay_finite_over_a_noisy_track():
    processor = FixProcessor(PipelineSettings(throttle_interval_ms=0))
    t = 0
    lat = lon = 0.0
    for i in range(200):
        t += 1 + (i % 3) * 700
        lat += 0.00001 * ((i % 5) - 2)
        lon += 0.00001 * ((i % 7) - 3)
        record = processor.process(_fix(lat, lon, t=t, speed=None if i % 2 else float(i % 4)))
        assert record is not None
        assert math.isfinite(record.speed) and record.speed >= 0
        assert math.isfinite(record.heading) and 0 <= record.heading < 360


def test_reset_forgets_history():
    processor = FixProcessor(PipelineSettings())
    processor.process(_fix(t=0, speed=4.0))
    processor.reset()
    assert processor.state == ProcessorState()
    assert processor.process(_fix(t=0, speed=4.0)) is not None


def test_pool_keeps_devices_independent():
    pool = FixProcessorPool(overrides={"noisy": {"pipeline": {"smoothing_alpha": 0.5}}})

    assert pool.process("bus-1", _fix(t=0, speed=4.0)) is not None
    assert pool.process("bus-2", _fix(t=0, speed=4.0)) is not None
    assert pool.process("bus-1", _fix(t=500, speed=4.0)) is None
    assert pool.get("noisy").settings.smoothing_alpha == 0.5
    assert pool.get("bus-1").settings.smoothing_alpha == pytest.approx(0.2)
    assert pool.get("bus-1") is not pool.get("bus-2")
    assert pool.devices() == ["bus-1", "bus-2", "noisy"]

    pool.discard("bus-1")
    assert pool.devices() == ["bus-2", "noisy"]
    assert pool.get("bus-1").state == ProcessorState()


@pytest.mark.parametrize("aux", [math.nan, math.inf, -math.inf])
def test_non_finite_orientation_reading_is_ignored(aux):
    processor = FixProcessor(PipelineSettings())
    outcome = processor.step(_fix(t=0), aux_heading=aux)

    assert outcome is not None
    assert outcome.heading.source is HeadingSource.NONE
    assert outcome.record.heading == 0.0
