# infrastructure/logging/log_setup.py
import sys

from loguru import logger

_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {message} | {extra}"


def setup_console_logging(level: str = "INFO", sink=None) -> int:
    logger.remove()
    return logger.add(sink or sys.stderr, level=level, format=_FORMAT)
