"""
Application startup and shutdown.

Handles FastAPI lifecycle tasks: logging setup and scheduler start/stop.
"""
import logging

from ..config import get_config
from .scheduler import init_scheduler, shutdown_scheduler

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO"):
    """Root logging setup shared by the app and the CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def initialize_app():
    """Initialize the application on startup.

    Called by FastAPI's startup event handler.
    """
    config = get_config()
    configure_logging(config.log_level)
    logger.info(f"Starting CRM jobs service ({config.environment})")

    # A broken scheduler must not stop the HTTP triggers from serving
    try:
        if init_scheduler(config):
            logger.info("Background job scheduler initialized")
    except Exception as e:
        logger.warning(f"Scheduler init failed (non-fatal): {e}")


def shutdown_app():
    shutdown_scheduler()
