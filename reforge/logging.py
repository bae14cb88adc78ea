"""Logging for reforge runs.

Console output is meant to be read while a run streams: progress lines such as
``[3/5] AI analyzes code architecture: in-progress`` are printed bare, and only
warnings and errors carry their level. A log file, when requested, keeps the
full record with timestamps and logger names for later troubleshooting.
"""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "reforge"
CONSOLE_PREFIX = "[reforge]"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``reforge`` or one of its children, e.g. ``reforge.github``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


class ConsoleFormatter(logging.Formatter):
    """Renders INFO and DEBUG as plain progress, tagging anything louder."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.levelno >= logging.WARNING:
            line = f"{CONSOLE_PREFIX} {record.levelname} {message}"
        else:
            line = f"{CONSOLE_PREFIX} {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install the console handler and, optionally, a file sink on ``reforge``.

    Calling this again replaces the previous handlers.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(ConsoleFormatter())
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        sink = logging.FileHandler(log_file, encoding="utf-8")
        # The file always records debug detail, whatever the console shows.
        sink.setLevel(logging.DEBUG)
        sink.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(sink)
        logger.setLevel(logging.DEBUG)

    return logger


__all__ = ["ConsoleFormatter", "configure_logging", "get_logger"]
