"""
Logging Configuration
=====================

structlog front end over standard library handlers. Production renders
JSON (structlog's JSONRenderer, python-json-logger for plain records);
development and testing render for the console.

The ``rasterizer`` logger follows the configured level. The HTTP client and
the browser driver are kept at WARNING, they log every request otherwise.
"""

import logging
import logging.config
import sys
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import structlog
from structlog.types import Processor

from .settings import get_settings

if TYPE_CHECKING:
    from .settings import Settings

PACKAGE_LOGGER = "rasterizer"
QUIET_LOGGERS = ("aiohttp", "playwright", "asyncio")
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_FORMATTERS: Dict[str, Dict[str, Any]] = {
    "console": {
        "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        "datefmt": "%H:%M:%S",
    },
    "file": {
        "format": "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s",
        "datefmt": "%Y-%m-%d %H:%M:%S",
    },
    "json": {
        "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
        "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
    },
}


def _processors(settings: "Settings") -> List[Processor]:
    processors: List[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.environment == "production":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=settings.environment == "development"))
    return processors


def _handlers(settings: "Settings") -> Dict[str, Dict[str, Any]]:
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json" if settings.environment == "production" else "console",
            "stream": sys.stderr,
        },
    }
    # No files are written while testing
    if settings.log_file is not None and settings.environment != "testing":
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "json" if settings.environment == "production" else "file",
            "filename": str(settings.log_file),
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
        }
    return handlers


def get_logging_config(settings: "Settings") -> Dict[str, Any]:
    """Build the ``logging.config.dictConfig`` dictionary for ``settings``."""
    handlers = _handlers(settings)
    names = list(handlers)

    loggers: Dict[str, Dict[str, Any]] = {
        PACKAGE_LOGGER: {"level": settings.log_level, "handlers": names, "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING", "handlers": names, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {name: _FORMATTERS[name] for name in {h["formatter"] for h in handlers.values()}},
        "handlers": handlers,
        "root": {"level": "WARNING", "handlers": names},
        "loggers": loggers,
    }


def setup_logging(settings: Optional["Settings"] = None) -> None:
    """Configure structlog and the standard library handlers."""
    settings = settings or get_settings()

    structlog.configure(
        processors=_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.config.dictConfig(get_logging_config(settings))


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


setup_logging()
