"""
Centralized loguru sink configuration.
"""

import sys
from typing import Optional

from loguru import logger

from loretrigger.core.config import settings


def setup_logging(level: Optional[str] = None, json: Optional[bool] = None) -> None:
    """
    Replace loguru's default sink with a stderr sink at the configured level.

    Args:
        level: Log level name, defaults to settings.LOG_LEVEL
        json: Emit serialized JSON records, defaults to settings.LOG_JSON
    """
    level = (level or settings.LOG_LEVEL).upper()
    serialize = settings.LOG_JSON if json is None else json

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        serialize=serialize,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan> - <level>{message}</level>"
        ),
    )
