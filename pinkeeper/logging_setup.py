"""
Console logging.

Modules log through the standard logging module; the entry point routes those
records into loguru, which prints one colored, UTC-timestamped line each.
"""

import logging
import sys

from loguru import logger

LOG_FORMAT = (
    "{time:ddd, DD MMM YYYY HH:mm:ss!UTC} GMT: "
    "<level>[{level}] {message}</level>"
)


class InterceptHandler(logging.Handler):
    """Forward standard logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.opt(exception=record.exc_info, depth=6).log(level, record.getMessage())


def configure_logging(level: str = "DEBUG") -> None:
    """
    Send all log output to stdout through loguru.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
    """
    level = level.upper()
    logger.remove()
    logger.level("DEBUG", color="<cyan>")
    logger.level("INFO", color="<green>")
    logger.level("WARNING", color="<yellow>")
    logger.level("ERROR", color="<red>")
    logger.add(sys.stdout, format=LOG_FORMAT, level=level, colorize=None)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    # Keep HTTP client chatter out of the console
    for noisy in ("urllib3", "requests", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
