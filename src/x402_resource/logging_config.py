"""
Logging configuration for x402 resource servers
"""

import logging
import sys
from typing import TextIO

DEFAULT_FORMAT = "%(asctime)s - %(levelname)-8s %(name)s %(filename)s:%(lineno)d %(message)s"

# Library loggers stay silent unless the application configures logging
logging.getLogger("x402_resource").addHandler(logging.NullHandler())


def setup_logging(
    level: int = logging.INFO,
    stream: TextIO | None = None,
    fmt: str = DEFAULT_FORMAT,
) -> None:
    """
    Configure root logging with timestamp, file and line number information

    Args:
        level: Logging level (default: INFO)
        stream: Output stream (default: stdout)
        fmt: Log record format
    """
    formatter = logging.Formatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
