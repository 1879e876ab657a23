"""Logging setup for the application.

Modules log through ``logging.getLogger(__name__)``; this module only installs
the handler on the ``src`` namespace once, from the application lifespan.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_FORMAT_DEBUG = "%(asctime)s %(levelname)s [%(name)s:%(lineno)d] %(message)s"

_logging_configured = False


def configure_logging(level: str | int = logging.INFO) -> None:
    """Configure the application logger namespace.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level.
    """
    global _logging_configured

    if _logging_configured:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    log_format = LOG_FORMAT_DEBUG if level == logging.DEBUG else LOG_FORMAT

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(log_format))

    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)
    app_logger.addHandler(handler)
    app_logger.propagate = False

    _logging_configured = True
