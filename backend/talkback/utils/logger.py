# talkback/utils/logger.py

import logging

from talkback.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(level: str = LOG_LEVEL) -> logging.Logger:
    """Configure the ``talkback`` logger hierarchy once."""
    logger = logging.getLogger("talkback")
    logger.setLevel(level)

    # Remove existing handlers so reloads don't double every line
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)

    return logger
