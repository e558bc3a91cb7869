"""
Logging Infrastructure - Logging structure avec structlog.

Usage:
------
    from api_cache.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("response_stored", client="demo", key="...")
"""

from api_cache.infrastructure.logging.config import (
    bound_context,
    configure_logging,
    get_logger,
)

__all__ = ["bound_context", "configure_logging", "get_logger"]
