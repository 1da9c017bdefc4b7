"""Shared logger setup for durable_directives modules."""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "DURABLE_DIRECTIVES_LOG_LEVEL"
DEFAULT_LEVEL = "WARNING"
_FORMAT = "[%(name)s] %(levelname)s %(message)s"


def _resolve_level(value: str | None) -> int:
    if not value:
        return logging.getLevelName(DEFAULT_LEVEL)
    level = logging.getLevelName(value.strip().upper())
    if isinstance(level, int):
        return level
    return logging.getLevelName(DEFAULT_LEVEL)


def configure(name: str) -> logging.Logger:
    """Return a named logger with a single stderr handler attached.

    The level comes from DURABLE_DIRECTIVES_LOG_LEVEL; repeated calls for the
    same name reuse the existing handler.
    """
    logger = logging.getLogger(name)
    if not any(getattr(handler, "_durable_directives", False) for handler in logger.handlers):
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._durable_directives = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    logger.setLevel(_resolve_level(os.environ.get(LOG_LEVEL_ENV)))
    return logger


def set_level(level: str | int) -> None:
    """Override the level of every logger configured under this package."""
    resolved = level if isinstance(level, int) else _resolve_level(level)
    for name in list(logging.root.manager.loggerDict):
        if name == "durable_directives" or name.startswith("durable_directives."):
            logging.getLogger(name).setLevel(resolved)
