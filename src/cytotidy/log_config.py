"""Logging configuration for cytotidy."""
import logging
import sys
from pathlib import Path
from typing import Union

LOG_FILE_NAME = "cytotidy.log"
CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_dir: Union[Path, str], log_level: str = "INFO") -> logging.Logger:
    """Attach console and ``cytotidy.log`` handlers to the package logger.

    Module loggers (``cytotidy.gate``, ``cytotidy.store``, ...) propagate to it,
    so one call configures the whole package. Calling it again replaces the
    handlers instead of stacking them.
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("cytotidy")
    logger.setLevel(numeric_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    logger.addHandler(file_handler)

    return logger
