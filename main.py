"""
Bethany - personal messaging companion with layered memory.
Main entry point for the application.
"""

import uvicorn

from config.settings import settings
from core import configure_logging, get_logger

logger = get_logger(__name__)


def main():
    """Start the API server. The rhythm scheduler runs inside its lifespan."""
    configure_logging()
    try:
        logger.info("=" * 50)
        logger.info("Bethany starting", port=settings.PORT, environment=settings.ENVIRONMENT)
        logger.info("=" * 50)

        from api.server import app

        uvicorn.run(app, host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())

    except KeyboardInterrupt:
        logger.info("Shutting down gracefully...")
    except Exception as e:
        logger.error("Error starting Bethany", error=str(e), exc_info=True)
        raise


if __name__ == "__main__":
    main()
