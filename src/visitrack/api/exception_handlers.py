"""
Application exception handlers.

Every error leaves the API as ``{"success": false, "message": ..., ...details}``.
"""
import logging
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config.constants import INTERNAL_ERROR_MESSAGE
from ..core.exceptions import VisitrackError, create_error_response, get_http_status_code

logger = logging.getLogger(__name__)


def _validation_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(location), "message": error.get("msg", "Invalid value")})
    return errors


class ExceptionHandlerRegistry:
    """Registry for the application's exception handlers."""

    def __init__(self, is_production: bool = True):
        self.is_production = is_production

    def register_handlers(self, app: FastAPI) -> None:
        """Register exception handlers for the application.

        Args:
            app: FastAPI application instance
        """
        @app.exception_handler(VisitrackError)
        async def visitrack_exception_handler(request: Request, exc: VisitrackError):
            """Handle application exceptions."""
            status_code = get_http_status_code(exc)
            if status_code >= 500:
                logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
                content = create_error_response(exc, include_details=not self.is_production)
            else:
                content = create_error_response(exc)
            return JSONResponse(status_code=status_code, content=content)

        @app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            """Handle request body, query and path validation errors."""
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={
                    "success": False,
                    "message": "Validation failed",
                    "errors": _validation_errors(exc),
                },
            )

        @app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            """Handle routing errors such as unknown paths and methods."""
            content: Dict[str, Any] = {"success": False, "message": str(exc.detail)}
            return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

        @app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle unexpected exceptions."""
            logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)

            if self.is_production:
                message = INTERNAL_ERROR_MESSAGE
            else:
                message = str(exc) or INTERNAL_ERROR_MESSAGE

            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"success": False, "message": message},
            )


def register_exception_handlers(app: FastAPI, is_production: bool = True) -> None:
    """Create an ``ExceptionHandlerRegistry`` and register its handlers in one call."""
    registry = ExceptionHandlerRegistry(is_production)
    registry.register_handlers(app)
