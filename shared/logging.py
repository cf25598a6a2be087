"""
Simple structured logging setup for the catalog service.
"""

import sys

from loguru import logger

from .config import ServiceSettings, get_settings


def setup_logging(service_name: str, settings: ServiceSettings = None) -> None:
    """Configure basic structured logging for a service."""
    settings = settings or get_settings()
    serialize = settings.log_format.lower() == "json"

    # Remove default logger
    logger.remove()

    # Add console handler
    logger.add(
        sys.stdout,
        format="{time:HH:mm:ss} | {level: <8} | {extra[service]} | {message}",
        level=settings.log_level,
        serialize=serialize,
    )

    # Add service context
    logger.configure(extra={"service": service_name})


def get_logger(request_id: str = None):
    """Get a logger with optional request ID."""
    if request_id:
        return logger.bind(request_id=request_id)
    return logger
