"""Logging setup for the visitrack service.

Everything is driven by environment variables so the same image can run
quiet in production and chatty while debugging an access decision:

- ``LOG_LEVEL``: explicit level, wins over ``LOG_VERBOSITY``
- ``LOG_VERBOSITY``: QUIET / NORMAL / VERBOSE / DEBUG
- ``LOG_FORMAT``: simple / detailed / json
- ``ENABLE_AUTH_LOGGING``: gate decisions and lockout transitions at INFO
- ``ENABLE_SQL_LOGGING``: let asyncpg log below WARNING
"""

import logging
import logging.config
import os
from enum import Enum
from typing import Any, Dict


class LogVerbosity(str, Enum):
    QUIET = "QUIET"
    NORMAL = "NORMAL"
    VERBOSE = "VERBOSE"
    DEBUG = "DEBUG"


class LogFormat(str, Enum):
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_VERBOSITY_LEVELS = {
    LogVerbosity.QUIET: "ERROR",
    LogVerbosity.NORMAL: "WARNING",
    LogVerbosity.VERBOSE: "INFO",
    LogVerbosity.DEBUG: "DEBUG",
}

_FORMATS = {
    LogFormat.SIMPLE: "%(asctime)s %(levelname)-8s %(message)s",
    LogFormat.DETAILED: "%(asctime)s %(levelname)-8s %(name)s [%(filename)s:%(lineno)d] %(message)s",
    LogFormat.JSON: '{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}',
}


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


def _resolve_level() -> str:
    explicit = os.getenv("LOG_LEVEL", "").upper()
    if explicit in _LEVELS:
        return explicit
    try:
        verbosity = LogVerbosity(os.getenv("LOG_VERBOSITY", "NORMAL").upper())
    except ValueError:
        verbosity = LogVerbosity.NORMAL
    return _VERBOSITY_LEVELS[verbosity]


def _resolve_format() -> str:
    try:
        return _FORMATS[LogFormat(os.getenv("LOG_FORMAT", "simple").lower())]
    except ValueError:
        return _FORMATS[LogFormat.SIMPLE]


def _isolated(level: str) -> Dict[str, Any]:
    return {"level": level, "handlers": ["console"], "propagate": False}


class LoggingConfig:
    """Builds and applies the ``dictConfig`` for the process."""

    # Gate decisions and lockout transitions
    AUTH_LOGGERS = ("visitrack.features.auth", "visitrack.features.permissions")

    # Third-party loggers held at ERROR
    NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")

    @classmethod
    def build_config(cls) -> Dict[str, Any]:
        level = _resolve_level()

        loggers = {name: _isolated("ERROR") for name in cls.NOISY_LOGGERS}
        if not _flag("ENABLE_SQL_LOGGING"):
            loggers["asyncpg"] = _isolated("WARNING")
        if _flag("ENABLE_AUTH_LOGGING"):
            auth_level = "DEBUG" if level == "DEBUG" else "INFO"
            loggers.update({name: _isolated(auth_level) for name in cls.AUTH_LOGGERS})

        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": _resolve_format(), "datefmt": "%Y-%m-%dT%H:%M:%S"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": level,
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": loggers,
        }

    @classmethod
    def configure(cls) -> None:
        config = cls.build_config()
        logging.config.dictConfig(config)
        logging.getLogger(__name__).debug(f"Logging configured at {config['root']['level']}")


def setup_logging() -> None:
    """Apply the environment-driven logging config; called once by ``main``."""
    LoggingConfig.configure()
