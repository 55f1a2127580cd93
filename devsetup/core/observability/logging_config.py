"""
Logging configuration — central setup for all entrypoints.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Every record is written as one line:

    [2024-06-01 12:00:00] [INFO] Starting phase: dotfiles (Dotfiles repository)

to the interactive console and, when a log file is given, appended to
the durable log. The file is never truncated by the tool.

Levels are resolved in precedence order:
    CLI flag  >  DEVSETUP_LOG_LEVEL env var  >  INFO (default)
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

RECORD_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
RECORD_DATEFMT = "%Y-%m-%d %H:%M:%S"
_OWNED_ATTR = "_devsetup_handler"

# Level names as they appear in the log
_LEVEL_NAMES = {
    logging.WARNING: "WARN",
    logging.CRITICAL: "ERROR",
}


class RecordFormatter(logging.Formatter):
    """Formatter that renders WARNING as WARN without touching global names."""

    def __init__(self) -> None:
        super().__init__(RECORD_FORMAT, datefmt=RECORD_DATEFMT)

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        record.levelname = _LEVEL_NAMES.get(record.levelno, original)
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    console: bool = True,
    console_level: str | None = None,
) -> Path | None:
    """Configure Python logging for the entire process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional durable log, opened in append mode.
        console: Mirror records to stderr.
        console_level: Separate threshold for the console (e.g. ERROR
            for --quiet) while the file keeps ``level``.

    Returns:
        The log file path in use, or None.
    """
    numeric_level = _parse_level(level)
    stream_level = _parse_level(console_level) if console_level else numeric_level
    formatter = RecordFormatter()

    root = logging.getLogger()
    # Replace only handlers installed by a previous call
    for handler in list(root.handlers):
        if getattr(handler, _OWNED_ATTR, False):
            root.removeHandler(handler)
            handler.close()

    if console:
        stream = logging.StreamHandler(sys.stderr)
        stream.setLevel(stream_level)
        stream.setFormatter(formatter)
        setattr(stream, _OWNED_ATTR, True)
        root.addHandler(stream)

    path: Path | None = None
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, mode="a", encoding="utf-8")
        fh.setLevel(numeric_level)
        fh.setFormatter(formatter)
        setattr(fh, _OWNED_ATTR, True)
        root.addHandler(fh)

    root.setLevel(min(numeric_level, stream_level) if console else numeric_level)

    # Don't propagate exceptions from logging itself
    logging.raiseExceptions = False
    return path


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.INFO
    name = level.upper()
    if name == "WARN":
        name = "WARNING"
    numeric = getattr(logging, name, None)
    if not isinstance(numeric, int):
        return logging.INFO
    return numeric
