# src/hdm_console/logging_setup.py

from __future__ import annotations

"""
Logging wiring for an app that embeds hdm_console.

Call configure_logging() once at startup: it takes app_name, log_dir and
log_level from the settings layer and hands them to setup_logging().
"""

import logging
import sys
from pathlib import Path

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

# Minimum console level by logger-name prefix; first match wins.
_CONSOLE_FLOORS: tuple[tuple[str, int], ...] = (
    ("hdm_console.fetch.", logging.WARNING),  # one DEBUG line per execute/settle
    ("hdm_console.", logging.NOTSET),
    ("py.warnings", logging.ERROR),
)
_THIRD_PARTY_FLOOR = logging.ERROR


class _ConsoleNoiseFilter(logging.Filter):
    """Console only. The file handler keeps every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, floor in _CONSOLE_FLOORS:
            if record.name.startswith(prefix):
                return record.levelno >= floor
        return record.levelno >= _THIRD_PARTY_FLOOR


def parse_level(value: str | int, default: int = logging.INFO) -> int:
    """'debug', 'WARNING' or '10' -> logging level; unknown names give `default`."""
    if isinstance(value, int):
        return value
    text = value.strip().upper()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text)
    return level if isinstance(level, int) else default


def setup_logging(
    *,
    log_dir: str | Path = ".local/hdm",
    log_name: str = "hdm",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Replace the root handlers with a filtered stderr handler and a full file
    handler at `<log_dir>/<log_name>.log`. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{log_name}.log"

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))

    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)

    root.addHandler(console)
    root.addHandler(file_handler)

    # warnings.warn(...) arrives as 'py.warnings'
    logging.captureWarnings(True)

    return log_file


def configure_logging(settings: Settings | None = None) -> Path:
    """Set up logging from the settings layer (HDM_APP_NAME / HDM_LOG_DIR / HDM_LOG_LEVEL)."""
    if settings is None:
        settings = get_settings()

    log_file = setup_logging(
        log_dir=settings.log_dir,
        log_name=settings.app_name,
        console_level=parse_level(settings.log_level),
    )
    logger.info("%s: logging to %s (console level %s)", settings.app_name, log_file, settings.log_level)
    return log_file
