"""
fixtrack CLI entrypoint.

This CLI is intended for replaying recorded fixes and for running a sharing session
without a device UI. It delegates all pipeline logic to `fixtrack.pipeline.processor`.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from fixtrack.config.settings import get_settings
from fixtrack.core.env import resolve_project_path
from fixtrack.core.logging import configure_logging
from fixtrack.pipeline.processor import FixProcessor
from fixtrack.sources.fixes import ReplayFixSource, StaticOrientationSource, iter_recorded_fixes
from fixtrack.tracking.session import TrackingSession
from fixtrack.transport.sink import CollectingSink, HttpTelemetrySink, TelemetrySink


def _cmd_replay(args: argparse.Namespace) -> int:
    """Handle the `replay` subcommand."""
    settings = get_settings()
    processor = FixProcessor(settings.pipeline)
    path = resolve_project_path(args.file)
    if not path.is_file():
        print(f"recording not found: {path}")
        return 2

    emitted = 0
    dropped = 0
    for fix in iter_recorded_fixes(path):
        record = processor.process(fix, args.aux_heading)
        if record is None:
            dropped += 1
            continue
        emitted += 1
        if args.json:
            print(json.dumps(record.model_dump(mode="json"), ensure_ascii=False))
            continue
        print(
            f"{record.timestamp}  {record.latitude:.5f},{record.longitude:.5f}  "
            f"speed={record.speed:.2f} m/s  heading={record.heading:.1f}  {record.status.value}"
        )

    if not args.json:
        print(f"emitted={emitted} throttled={dropped}")
    return 0


def _cmd_share(args: argparse.Namespace) -> int:
    """Handle the `share` subcommand."""
    settings = get_settings()

    tracking_update: dict[str, Any] = {}
    if args.device_id:
        tracking_update["device_id"] = args.device_id
    if args.bus_number:
        tracking_update["bus_number"] = args.bus_number
    if args.interval is not None:
        tracking_update["poll_interval_seconds"] = float(args.interval)
    tracking = settings.tracking.model_copy(update=tracking_update)

    collector = settings.collector
    if args.collector_url:
        collector = collector.model_copy(update={"base_url": args.collector_url})
    settings = settings.model_copy(update={"tracking": tracking, "collector": collector})

    sink: TelemetrySink
    if args.dry_run:
        sink = CollectingSink()
    else:
        sink = HttpTelemetrySink(settings.collector)

    orientation = StaticOrientationSource(args.aux_heading) if args.aux_heading is not None else None
    session = TrackingSession(
        source=ReplayFixSource(resolve_project_path(args.file)),
        sink=sink,
        orientation=orientation,
        settings=settings,
    )
    ticks = session.run(max_ticks=args.max_ticks)

    for message in reversed(session.messages):
        print(message)
    print(f"ticks={ticks} shared={len(session.messages)}")
    if session.last_error:
        print(f"last error: {session.last_error}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the fixtrack CLI."""
    parser = argparse.ArgumentParser(prog="fixtrack")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Overrides app.log_level / FIXTRACK_LOG_LEVEL",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    rep = sub.add_parser("replay", help="Run a recorded fix file (JSONL or CSV) through the pipeline.")
    rep.add_argument("file", help="Path to a .jsonl or .csv recording")
    rep.add_argument("--aux-heading", type=float, default=None, help="Compass heading fallback (degrees)")
    rep.add_argument("--json", action="store_true", help="Output one JSON record per line")
    rep.set_defaults(func=_cmd_replay)

    share = sub.add_parser("share", help="Replay a recording as a live sharing session to the collector.")
    share.add_argument("file", help="Path to a .jsonl or .csv recording")
    share.add_argument("--device-id", type=str, default=None)
    share.add_argument("--bus-number", type=str, default=None)
    share.add_argument("--collector-url", type=str, default=None)
    share.add_argument("--aux-heading", type=float, default=None, help="Compass heading fallback (degrees)")
    share.add_argument("--interval", type=float, default=None, help="Seconds between polls")
    share.add_argument("--max-ticks", type=int, default=None)
    share.add_argument("--dry-run", action="store_true", help="Keep shares in memory instead of posting")
    share.set_defaults(func=_cmd_share)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m fixtrack.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
