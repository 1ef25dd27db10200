"""Fake note-search backend entrypoint.

Serves the in-memory development backend the relay can point at.
"""

from notesearch.mock.fake_backend import create_app
from notesearch.core.config import settings
from notesearch.core.logging_config import setup_logging

# Configure logging
logger = setup_logging().bind(module=__name__)

app = create_app()

if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting fake backend on {settings.fake_backend_host}:{settings.fake_backend_port}")
    uvicorn.run(
        "fake_backend_entrypoint:app",
        host=settings.fake_backend_host,
        port=settings.fake_backend_port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
