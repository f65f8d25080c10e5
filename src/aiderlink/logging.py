"""Logging setup for aiderlink.

Everything logs under the ``aiderlink`` logger. Output goes to the file
named by config (``logging.file``, or ``AIDERLINK_LOG`` through the config
loader) and otherwise to stderr, but only when stderr is a terminal: the
REPL owns stdout and an editor front end may own the pipes.

Verbosity runs from 0 to 4: error, warning, info, verbose, trace.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiderlink.config.schema import LoggingConfig

TRACE = 5  # Raw transport traffic
VERBOSE = 15  # Payloads sent to the assistant

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"

logger = logging.getLogger("aiderlink")

_configured = False

_VERBOSITY = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)


class _LowercaseLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Effective level: ``verbose`` (0-4) wins over ``level`` (a name)."""
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        return _VERBOSITY[max(0, min(config.verbose, len(_VERBOSITY) - 1))]
    if config.level:
        name = config.level.upper()
        level = logging.getLevelName("WARNING" if name == "WARN" else name)
        if isinstance(level, int):
            return level
    return logging.INFO


def _log_handler(config: LoggingConfig | None) -> logging.Handler | None:
    path = config.file if config and config.file else os.environ.get("AIDERLINK_LOG")
    if path:
        try:
            return logging.FileHandler(os.path.expanduser(path), encoding="utf-8")
        except OSError as e:
            if sys.stderr.isatty():
                print(f"[aiderlink] Cannot open log file {path}: {e}", file=sys.stderr)
    if sys.stderr.isatty():
        return logging.StreamHandler(sys.stderr)
    return None


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure the ``aiderlink`` logger once; later calls do nothing."""
    global _configured
    if _configured:
        return
    _configured = True

    level = resolve_level(config)
    logger.setLevel(level)

    handler = _log_handler(config)
    if handler is None:
        return
    handler.setLevel(level)
    handler.setFormatter(_LowercaseLevelFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """The ``aiderlink`` logger, or its child ``aiderlink.<name>``."""
    return logger.getChild(name) if name else logger
