"""Structured JSON logging configuration."""
import logging
import sys

from pythonjsonlogger import jsonlogger

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# Loggers that flood the output during bulk imports
_QUIET_LOGGERS = ("sqlalchemy.engine", "asyncpg")


def setup_logging() -> None:
    """JSON records on stdout in production, plain text elsewhere."""
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if settings.APP_ENV == "production":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            jsonlogger.JsonFormatter(
                LOG_FORMAT,
                rename_fields={"asctime": "timestamp", "levelname": "level"},
            )
        )
        logging.root.handlers = [handler]
        logging.root.setLevel(level)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
