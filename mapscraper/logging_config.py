"""Logging setup for mapscraper.

Handlers live on the ``mapscraper`` package logger only; module loggers are
children of it and propagate, so ``configure_logging`` can swap level or log
directory at start-up without touching every module. ``LOG_LEVEL`` and
``MAPSCRAPER_LOG_DIR`` are read on every call, so values loaded from ``.env``
apply once the CLI reconfigures.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

PACKAGE_LOGGER = "mapscraper"
DEFAULT_LOG_DIR = "logs"
LOG_FILE_NAME = "mapscraper.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_LEVEL = "INFO"
MAX_LOG_BYTES = 1_000_000
LOG_BACKUPS = 3


def _resolve_level(value: str | int | None) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value or os.getenv("LOG_LEVEL") or DEFAULT_LEVEL).strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: str | int | None = None, log_dir: str | None = None) -> logging.Logger:
    """Attach console + rotating file handlers to the package logger, replacing old ones."""

    directory = log_dir or os.getenv("MAPSCRAPER_LOG_DIR") or DEFAULT_LOG_DIR
    os.makedirs(directory, exist_ok=True)
    resolved = _resolve_level(level)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = RotatingFileHandler(
        os.path.join(directory, LOG_FILE_NAME),
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    console_handler = logging.StreamHandler()
    for handler in (file_handler, console_handler):
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    package_logger.setLevel(resolved)
    package_logger.propagate = False
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``mapscraper`` hierarchy, configuring it on first use."""

    if not logging.getLogger(PACKAGE_LOGGER).handlers:
        configure_logging()

    if name == "__main__":
        name = f"{PACKAGE_LOGGER}.main"
    elif name != PACKAGE_LOGGER and not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
