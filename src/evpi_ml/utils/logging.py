"""
Logging setup for the EVPI pipeline.

Library modules only call logging.getLogger(__name__); records bubble up to
the "evpi_ml" package logger. Entry points (the CLI runner) call
setup_logger() once to give that logger its handlers.
"""

import logging
import sys
from pathlib import Path

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _add_handler(
    logger: logging.Logger,
    handler: logging.Handler,
    level: int,
    formatter: logging.Formatter,
):
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def setup_logger(
    name: str = "evpi_ml",
    level: int = logging.INFO,
    log_file: Path | None = None,
    format_string: str | None = None,
    stream=None,
) -> logging.Logger:
    """
    Attach a console handler, and optionally a file handler, to a logger.

    Calling it again replaces the handlers, so repeated CLI invocations in one
    process (tests) never duplicate output.

    Args:
        name: Logger name ("evpi_ml" covers every module of the package)
        level: Logging level for the logger and its handlers
        log_file: Also append records to this file (parent dirs are created)
        format_string: Record format (default: DEFAULT_FORMAT)
        stream: Console stream (default: sys.stdout)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT)

    console = stream if stream is not None else sys.stdout
    _add_handler(logger, logging.StreamHandler(console), level, formatter)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _add_handler(logger, logging.FileHandler(log_file, mode="a"), level, formatter)

    return logger


def log_section(logger: logging.Logger, title: str, width: int = 80, char: str = "="):
    """Log a banner around ``title``."""
    rule = char * width
    for line in (rule, title, rule):
        logger.info(line)
