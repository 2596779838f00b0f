"""
Logging configuration.

The packaged `src/fixtrack/config/logging.yaml` is applied via `dictConfig`. The level
comes from, in order: an explicit argument (the CLI's `--log-level`), then
`settings.app.log_level` (which `FIXTRACK_LOG_LEVEL` overrides). Per-logger entries in
the YAML (httpx/httpcore at WARNING) keep their own levels so a DEBUG run of the
pipeline is not flooded with connection chatter.
"""

from __future__ import annotations

import logging.config

from fixtrack.config.settings import get_logging_config, get_settings


def configure_logging(level: str | None = None) -> str:
    """Apply the packaged logging config; returns the effective root level."""
    effective = (level or get_settings().app.log_level).upper()
    if not isinstance(logging.getLevelName(effective), int):
        raise ValueError(f"Unknown log level '{effective}'")

    # get_logging_config() is cached; never mutate the shared dict.
    config = {**get_logging_config()}
    config["root"] = {**config.get("root", {}), "level": effective}
    config["handlers"] = {
        name: ({**handler, "level": effective} if isinstance(handler, dict) and "level" in handler else handler)
        for name, handler in config.get("handlers", {}).items()
    }

    logging.config.dictConfig(config)
    return effective
