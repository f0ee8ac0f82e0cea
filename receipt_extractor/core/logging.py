"""
Loguru sink configuration for the API process.

Modules log through ``from loguru import logger`` directly; this only decides
where records go and at which level.
"""
import sys

from loguru import logger

from .config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level> | {extra}"
)


def setup_logging(level: str | None = None):
    """Replace loguru's default sink with a stderr sink at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level=(level or settings.log_level).upper(), format=LOG_FORMAT)
    return logger
