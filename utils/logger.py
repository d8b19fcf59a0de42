"""
utils/logger.py
---------------
Logging for the voting app.
All modules should use `get_logger(__name__)` to obtain a logger instance.

Everything goes to stdout in one format, with the thread name included so
concurrent requests sharing the connection pool can be told apart.
uvicorn's per-request access log is turned down to WARNING; the app logs
each vote itself.
"""

import logging
import sys

from config import LOG_LEVEL

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(threadName)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_QUIET_LOGGERS = ("uvicorn.access",)
_configured = False


def _level(name: str) -> int:
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    """Attach the stdout handler to the root logger. Runs once per process."""
    global _configured
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
    root = logging.getLogger()
    root.setLevel(_level(LOG_LEVEL))
    root.addHandler(handler)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return the logger for `name` (usually ``__name__``), configuring logging first."""
    configure_logging()
    return logging.getLogger(name)
