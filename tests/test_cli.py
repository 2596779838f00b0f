import json
import logging

from fixtrack.cli import main


def _write_track(tmp_path):
    path = tmp_path / "track.jsonl"
    rows = [
        {"latitude": 0, "longitude": 0, "speed": 5, "heading": 90, "timestamp": 0},
        {"latitude": 0.00005, "longitude": 0, "timestamp": 400},
        {"latitude": 0.0001, "longitude": 0, "timestamp": 1000},
    ]
    path.write_text("\n".join(json.dumps(r) for r in rows) + "\n", encoding="utf-8")
    return path


def test_replay_prints_json_records(tmp_path, capsys):
    path = _write_track(tmp_path)

    assert main(["replay", str(path), "--json"]) == 0

    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert [r["timestamp"] for r in lines] == ["1970-01-01T00:00:00.000Z", "1970-01-01T00:00:01.000Z"]
    assert lines[1]["status"] == "moving"
    assert abs(lines[1]["speed"] - 6.226) < 1e-3
    assert abs(lines[1]["heading"] - 72.0) < 1e-9


def test_replay_summary_counts_throttled_fixes(tmp_path, capsys):
    path = _write_track(tmp_path)

    assert main(["replay", str(path)]) == 0

    out = capsys.readouterr().out
    assert "emitted=2 throttled=1" in out


def test_share_dry_run(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr("fixtrack.tracking.session.time.sleep", lambda _s: None)
    path = _write_track(tmp_path)

    assert main(["share", str(path), "--dry-run", "--device-id", "dev-9", "--interval", "0.01"]) == 0

    out = capsys.readouterr().out
    assert "ticks=4 shared=2" in out
    assert "(moving)" in out


def test_replay_reports_missing_recording(tmp_path, capsys):
    assert main(["replay", str(tmp_path / "missing.jsonl")]) == 2
    assert "recording not found" in capsys.readouterr().out


def test_log_level_flag_overrides_settings(tmp_path, capsys):
    path = _write_track(tmp_path)
    try:
        assert main(["--log-level", "debug", "replay", str(path)]) == 0
        assert logging.getLogger().level == logging.DEBUG
    finally:
        main(["--log-level", "INFO", "replay", str(path)])
    capsys.readouterr()
