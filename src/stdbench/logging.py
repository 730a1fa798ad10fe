"""Logging setup for stdbench.

Progress messages go through the ``stdbench`` logger to the console
(stderr).  Verbosity 1 adds the command line of every subprocess, and
verbosity 2 additionally dumps raw subprocess output; both are emitted
at DEBUG level.  An optional file handler always logs at DEBUG.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "stdbench"
_DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_CONSOLE_FORMAT = "%(levelname)-8s %(message)s"


def setup_logging(
    *,
    verbosity: int = 0,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure and return the root stdbench logger.

    Args:
        verbosity: 0 logs progress at INFO; 1 or more enables DEBUG on
            the console (command echoes, and raw output at 2).
        log_file: If provided, add a file handler at DEBUG level to this path.

    Returns:
        The configured root logger for stdbench.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Remove any existing handlers to allow reconfiguration.
    logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbosity >= 1 else logging.INFO)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        logger.addHandler(fh)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a named child logger under the stdbench namespace."""
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")
