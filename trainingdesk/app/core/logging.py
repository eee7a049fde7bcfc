from __future__ import annotations

import logging
from logging import Logger

from trainingdesk.app.core.settings import get_settings

_configured = False


def configure_logging() -> Logger:
    """
    Configure root logger for the application.

    Uses a simple format suitable for both local development and production logs.
    Safe to call more than once; handlers are only installed the first time.
    """
    global _configured
    settings = get_settings()

    log_level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(log_level, int):
        log_level = logging.DEBUG if settings.is_debug else logging.INFO

    if not _configured:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        )
        _configured = True

    logger = logging.getLogger("trainingdesk")
    logger.setLevel(log_level)
    return logger
