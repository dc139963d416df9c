# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Logging configuration for tspec-runner."""

import logging
import sys
from enum import Enum

import errorhandler


class VerbosityLevel(str, Enum):
    """Supported log verbosity levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def configure_logging(
    level: VerbosityLevel | str,
    error_handler: errorhandler.ErrorHandler | None = None,
) -> None:
    """Configure the root logger for console output.

    Args:
        level: Verbosity level name
        error_handler: Optional error handler to reset, so that only errors
            logged after configuration are tracked
    """
    level_name = level.value if isinstance(level, VerbosityLevel) else str(level)
    log_level = getattr(logging, level_name.upper(), logging.WARNING)

    logger = logging.getLogger()
    for handler in list(logger.handlers):
        if getattr(handler, "_tspec_runner", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s - %(message)s"))
    handler._tspec_runner = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(log_level)

    if error_handler is not None:
        error_handler.reset()
