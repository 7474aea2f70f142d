# src/focus_timeline/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

APP_LOGGER = "focus_timeline"

# Loggers that fire on every tick; they only reach the console at WARNING+.
TICK_LOGGERS = (
    "focus_timeline.session.ticker",
    "focus_timeline.connectors.ticker_runner",
)

LOG_FILE_NAME = "focus.log"
LOG_FILE_MAX_BYTES = 2 * 1024 * 1024
LOG_FILE_BACKUPS = 3


class _ConsoleNoiseFilter(logging.Filter):
    """Keep the REPL readable: app logs pass, tick chatter and third-party logs need a higher level."""

    def __init__(self, quiet: tuple[str, ...] = TICK_LOGGERS) -> None:
        super().__init__()
        self.quiet = quiet

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == APP_LOGGER or name.startswith(APP_LOGGER + "."):
            if name.startswith(self.quiet):
                return record.levelno >= logging.WARNING
            return True
        # py.warnings and every other library.
        return record.levelno >= logging.ERROR


class _ShortNameFormatter(logging.Formatter):
    """Console lines drop the package prefix: `session.engine` instead of `focus_timeline.session.engine`."""

    def format(self, record: logging.LogRecord) -> str:
        short = record.name.removeprefix(APP_LOGGER + ".")
        original, record.name = record.name, short
        try:
            return super().format(record)
        finally:
            record.name = original


def _owned(handler: logging.Handler) -> bool:
    return getattr(handler, "_focus_timeline", False)


def setup_logging(
    *,
    log_dir: str | Path = ".local/focus",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install the console and rotating file handlers on the root logger.

    Safe to call again: handlers from a previous call are replaced, handlers
    installed by anyone else (e.g. pytest) are left alone. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in [h for h in root.handlers if _owned(h)]:
        root.removeHandler(h)
        h.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_ShortNameFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s", "%H:%M:%S"))
    console.addFilter(_ConsoleNoiseFilter())

    # The ticker logs at DEBUG every interval, so the file is size-capped.
    file = RotatingFileHandler(
        log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8"
    )
    file.setLevel(file_level)
    file.setFormatter(
        logging.Formatter(
            "%(asctime)s.%(msecs)03d %(levelname)s %(threadName)s %(name)s: %(message)s",
            "%Y-%m-%d %H:%M:%S",
        )
    )

    for h in (console, file):
        h._focus_timeline = True  # type: ignore[attr-defined]
        root.addHandler(h)

    logging.captureWarnings(True)
    return log_file
