"""
Logging setup shared by the API and the CLI.

Handlers and formats come from the packaged `logging.yaml`. The level comes from
`app.log_level` (or an explicit override such as `lovestory --log-level`) and is applied to
the root logger, the `lovestory` package logger and every handler that declares a level.
"""

from __future__ import annotations

import copy
import logging
import logging.config

from lovestory.config.settings import get_logging_config, get_settings

PACKAGE_LOGGER = "lovestory"


def configure_logging(level: str | None = None) -> str:
    """Apply the logging config; returns the effective level name."""
    effective = (level or get_settings().app.log_level).upper()
    if not isinstance(logging.getLevelName(effective), int):
        effective = "INFO"

    config = copy.deepcopy(get_logging_config())
    config.setdefault("root", {})["level"] = effective
    config.setdefault("loggers", {})[PACKAGE_LOGGER] = {"level": effective}
    for handler in config.get("handlers", {}).values():
        if "level" in handler:
            handler["level"] = effective

    logging.config.dictConfig(config)
    return effective
