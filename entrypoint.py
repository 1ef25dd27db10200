"""Relay entrypoint.

Configures logging, creates the FastAPI relay app, and starts the server.
"""

from notesearch.core.app import create_app
from notesearch.core.config import settings
from notesearch.core.logging_config import setup_logging

# Configure logging
logger = setup_logging().bind(module=__name__)

# Create FastAPI application
app = create_app()

if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting relay on {settings.host}:{settings.port}, default target {settings.default_target_url}")
    uvicorn.run(
        "entrypoint:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
