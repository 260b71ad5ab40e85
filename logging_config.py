"""Application logging.

One shared ``country_api`` logger with a UTC-stamped console handler, plus a
daily rotating file under ``LOG_DIR`` when that setting is present. Modules
call ``get_logger(__name__)`` to obtain a child logger.
"""

from __future__ import annotations

import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler

from config import settings

APP_LOGGER_NAME = "country_api"


class _UTCFormatter(logging.Formatter):
    """Formatter that forces UTC timestamps."""

    converter = staticmethod(time.gmtime)


def _formatter() -> logging.Formatter:
    return _UTCFormatter(
        fmt="%(asctime)sZ %(levelname)s pid=%(process)d %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


def configure_logging(level_name: str | None = None) -> logging.Logger:
    """Configure and return the application logger.

    Safe to call multiple times.
    """

    level = getattr(logging, (level_name or settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(level)

    if getattr(app_logger, "_configured", False):
        return app_logger

    sh = logging.StreamHandler()
    sh.setFormatter(_formatter())
    app_logger.addHandler(sh)

    if settings.LOG_DIR:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        fh = TimedRotatingFileHandler(
            os.path.join(settings.LOG_DIR, "app.log"),
            when="midnight",
            interval=1,
            backupCount=14,
            utc=True,
            encoding="utf-8",
        )
        fh.setFormatter(_formatter())
        app_logger.addHandler(fh)

    # Do not propagate to the global root logger (prevents double logging).
    app_logger.propagate = False

    app_logger._configured = True  # type: ignore[attr-defined]
    return app_logger


def get_logger(module_name: str | None = None) -> logging.Logger:
    """Get a child of the application logger.

    Example:
        logger = get_logger(__name__)
    """

    configure_logging()
    return logging.getLogger(f"{APP_LOGGER_NAME}.{module_name or 'app'}")
