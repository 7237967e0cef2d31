"""Logging setup for loadcheck.

All loggers live under the ``loadcheck`` namespace. The driver logs run
lifecycle events at INFO and individual iteration failures at DEBUG, so a
default run prints a handful of lines no matter how many requests it makes.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

_ROOT = "loadcheck"

# Extra attributes copied into JSON records when a call site passes them.
_CONTEXT_FIELDS = ("scenario", "vu_id", "iteration")


class _JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message (+ context)."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(
    level: int | str = logging.INFO,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure and return the ``loadcheck`` root logger.

    Calling this again only updates the level; the handler installed by the
    first call is kept, so output is never duplicated.

    Args:
        level: Logging level, as a number or a name such as ``"DEBUG"``.
        json_format: Emit one-line JSON records instead of plain text.

    Returns:
        The configured ``loadcheck`` logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(_ROOT)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if json_format:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Rich owns the terminal during a run; keep our records off the root logger.
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger("loadcheck.<name>")``."""
    return logging.getLogger(f"{_ROOT}.{name}")
