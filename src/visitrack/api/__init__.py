"""HTTP surface: application factory, service wiring and exception handlers."""

from .app import create_app
from .exception_handlers import ExceptionHandlerRegistry, register_exception_handlers
from .factory import ServiceFactory

__all__ = [
    "create_app",
    "ExceptionHandlerRegistry",
    "register_exception_handlers",
    "ServiceFactory",
]
