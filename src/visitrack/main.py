"""Visitrack API main entry point."""

import logging

import uvicorn

from .config.logging_config import setup_logging

# Configure logging based on environment
setup_logging()

from .api.app import create_app  # noqa: E402
from .config.settings import get_settings  # noqa: E402

logger = logging.getLogger(__name__)

# Create the FastAPI application
app = create_app()


def main() -> None:
    """Run the application."""
    settings = get_settings()
    logger.info(f"Starting Visitrack API on {settings.host}:{settings.port}")

    uvicorn.run(
        "visitrack.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
        access_log=True,
    )


if __name__ == "__main__":
    main()
