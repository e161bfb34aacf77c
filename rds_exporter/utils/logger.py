"""Structured JSON logging configuration."""

import logging
import sys
from typing import Optional, TextIO

from pythonjsonlogger import jsonlogger

# Field names emitted on every line, in order
LOG_FORMAT = '%(levelname)s %(name)s %(message)s'
RENAMED_FIELDS = {'levelname': 'level', 'name': 'logger'}


def setup_logger(
    name: str = "rds_exporter",
    level: str = "INFO",
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Configure one JSON line per record on stdout.

    Lines carry ``time``, ``level``, ``logger`` and ``message`` plus any
    ``extra`` fields (``instance``, ``metric``, ``error_type``). Child
    loggers created with ``getChild`` inherit the handler.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Output stream (default: sys.stdout at call time)

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Reconfiguring replaces the previous handler
    logger.handlers = []

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(jsonlogger.JsonFormatter(
        LOG_FORMAT,
        rename_fields=RENAMED_FIELDS,
        timestamp='time'
    ))
    logger.addHandler(handler)

    # Records stop here; the root logger is left to the host process
    logger.propagate = False

    return logger
