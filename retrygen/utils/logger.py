"""Logging setup shared by all retrygen modules"""
import logging
import os
import sys

from colorama import Fore, Style, init as colorama_init

colorama_init()

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LEVEL_COLORS = {
    'DEBUG': Fore.CYAN,
    'INFO': Fore.GREEN,
    'WARNING': Fore.YELLOW,
    'ERROR': Fore.RED,
    'CRITICAL': Fore.RED + Style.BRIGHT,
}


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name"""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname)
        if not color:
            return super().format(record)

        original = record.levelname
        record.levelname = f"{color}{original}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logger(name: str, level: str = None) -> logging.Logger:
    """Return a logger with a single coloured console handler"""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColoredFormatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    level_name = (level or os.environ.get('RETRYGEN_LOG_LEVEL', 'INFO')).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    return logger
