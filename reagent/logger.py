"""Process-wide loguru logger."""

from __future__ import annotations

import sys

from loguru import logger

from reagent.config import settings

logger.remove()  # Remove default handler
logger.add(sink=sys.stdout, level=settings.log_level.upper())

__all__ = ["logger"]
