"""
Logging configuration.

We use a YAML logging config (`src/eegshare/config/logging.yaml`) and then apply
runtime overrides from settings (`EEGSHARE_LOG_LEVEL`) or the CLI (`--log-level`).
"""

from __future__ import annotations

import logging.config

from eegshare.config.settings import get_logging_config, get_settings


def configure_logging(level: str | None = None) -> None:
    """Configure the Python logging system from the packaged YAML config.

    `level` wins over `app.log_level`; it is applied to the root logger and every
    handler that declares its own level.
    """
    config = dict(get_logging_config())
    level = (level or get_settings().app.log_level).upper()

    config["root"] = {**config.get("root", {}), "level": level}
    config["handlers"] = {
        name: ({**handler, "level": level} if isinstance(handler, dict) and "level" in handler else handler)
        for name, handler in config.get("handlers", {}).items()
    }
    logging.config.dictConfig(config)
