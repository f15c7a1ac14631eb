"""Configuration for visitrack: settings, constants and logging."""

from .settings import Settings, get_settings
from .logging_config import LoggingConfig, setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "LoggingConfig",
    "setup_logging",
]
