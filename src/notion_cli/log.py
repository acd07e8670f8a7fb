"""Logging setup for the CLI."""

import logging
import sys

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool = False) -> logging.Logger:
    """Attach a single stderr handler to the package logger.

    Safe to call more than once; an existing handler is replaced.
    """
    logger = logging.getLogger("notion_cli")
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    # httpx logs every request at DEBUG
    logging.getLogger("httpx").setLevel(logging.INFO if debug else logging.WARNING)
    return logger
