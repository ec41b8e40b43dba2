"""Logging setup for kaiyo.

Every module logs through the shared loguru ``logger``; this module only
decides where records go.
"""

import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(level: str = "INFO", serialize: bool = False) -> None:
    """Replace the default loguru sink with a single stderr sink.

    Args:
        level: Minimum level to emit (DEBUG, INFO, WARNING, ERROR)
        serialize: Emit JSON records instead of formatted text
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=LOG_FORMAT,
        serialize=serialize,
        backtrace=False,
        diagnose=False,
    )
