"""Logging setup for the dagpad package.

Modules log through ``logging.getLogger(__name__)``, which places every record
beneath the shared ``"dagpad"`` logger. Applications call
:func:`setup_logging` once to attach handlers; library code never configures
handlers itself.
"""

from __future__ import annotations

import logging
from pathlib import Path

LOGGER_NAME = "dagpad"

_FORMAT = "%(asctime)s %(levelname)s %(module)s:%(funcName)s:%(lineno)d - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_file: str | Path | None = None,
    level: int = logging.INFO,
    to_stdout: bool = False,
) -> logging.Logger:
    """Configure and return the shared ``"dagpad"`` logger.

    Args:
        log_file: Optional destination log file path.
        level: Logging level. Defaults to ``logging.INFO``.
        to_stdout: If True, also echo records to the console.

    Returns:
        The configured ``"dagpad"`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)

    if log_file is not None:
        log_path = str(Path(log_file).resolve())
        has_file_handler = any(
            isinstance(handler, logging.FileHandler)
            and getattr(handler, "baseFilename", None) == log_path
            for handler in logger.handlers
        )
        if not has_file_handler:
            file_handler = logging.FileHandler(log_path)
            file_handler.setLevel(level)
            file_handler.setFormatter(fmt)
            logger.addHandler(file_handler)

    if to_stdout and not any(
        type(handler) is logging.StreamHandler for handler in logger.handlers
    ):
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(level)
        stream_handler.setFormatter(fmt)
        logger.addHandler(stream_handler)

    # Records stop here so a configured root logger does not print them twice.
    logger.propagate = False
    return logger
