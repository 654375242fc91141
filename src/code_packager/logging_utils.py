"""Logging setup for the command-line entry point."""

from __future__ import annotations

import logging
import sys

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_NAME = "code_packager.stderr"


def configure_logging(level: int = logging.WARNING) -> logging.Logger:
    """
    Configure console logging to stderr and return the package logger.
    Calling it again replaces the handler it installed before.
    """

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    formatter = logging.Formatter(fmt=DEFAULT_LOG_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    for handler in list(root_logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root_logger.removeHandler(handler)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.set_name(_HANDLER_NAME)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(level)
    root_logger.addHandler(stream_handler)

    logger = logging.getLogger("code_packager")
    logger.setLevel(level)
    return logger
